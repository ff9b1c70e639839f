"""
Test the timetable API with self-contained test data.
"""
import pytest
from fastapi.testclient import TestClient
from main import app
from service.timetable_solver import TimetableScheduler


client = TestClient(app)


# Test data fixtures
def get_minimal_request():
    """Return minimal valid generation request."""
    return {
        "teachers": [
            {
                "id": "t1",
                "name": "John Doe",
                "subjects": ["math"],
                "primary_subjects": ["math"],
                "availability": [],
                "max_daily_hours": 6,
                "rating": 4
            }
        ],
        "classes": [
            {
                "id": "c1",
                "name": "Grade 7A",
                "room": "R101",
                "subjects": ["math"]
            }
        ],
        "subjects": [
            {"id": "math", "name": "Mathematics", "credits": 3, "weekly_sessions": 5}
        ],
        "config": {
            "days": ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"],
            "start_time": "08:00",
            "end_time": "10:00",
            "period_duration": 1,
            "special_periods": [
                {"day": "Friday", "start_time": "08:00", "end_time": "09:00", "type": "Assembly"}
            ],
            "fill_all_periods": True
        }
    }


def get_medium_request():
    """Return medium-sized request with several classes sharing teachers."""
    return {
        "teachers": [
            {
                "id": "t1",
                "name": "Alice Smith",
                "subjects": ["math", "physics"],
                "primary_subjects": ["math"],
                "availability": [
                    {"day": "Monday", "start_time": "08:00", "end_time": "12:00"},
                    {"day": "Tuesday", "start_time": "08:00", "end_time": "12:00"}
                ],
                "max_daily_hours": 3,
                "rating": 5
            },
            {
                "id": "t2",
                "name": "Bob Johnson",
                "subjects": ["english", "math"],
                "primary_subjects": ["english"],
                "availability": [],
                "max_daily_hours": 4,
                "rating": 3
            },
            {
                "id": "t3",
                "name": "Carol White",
                "subjects": ["physics", "english"],
                "primary_subjects": ["physics"],
                "availability": [],
                "max_daily_hours": 4,
                "rating": 2
            }
        ],
        "classes": [
            {"id": "c1", "name": "Grade 7A", "room": "R101", "subjects": ["math", "english", "physics"]},
            {"id": "c2", "name": "Grade 7B", "room": "R102", "subjects": ["math", "english"]}
        ],
        "subjects": [
            {"id": "math", "name": "Mathematics", "credits": 4, "weekly_sessions": 3},
            {"id": "english", "name": "English", "credits": 3, "weekly_sessions": 2},
            {"id": "physics", "name": "Physics", "credits": 2, "weekly_sessions": 2}
        ],
        "config": {
            "days": ["Monday", "Tuesday"],
            "start_time": "08:00",
            "end_time": "12:00",
            "period_duration": 1,
            "special_periods": [
                {"day": "Monday", "start_time": "10:00", "end_time": "11:00", "type": "Break"}
            ],
            "fill_all_periods": False,
            "branching_limit": 4,
            "per_day_subject_cap": 2
        }
    }


def test_root_endpoint():
    """Test root endpoint is accessible."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert "service" in data
    assert data["status"] == "healthy"


def test_health_endpoint():
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


def test_generate_minimal():
    """Test /api/v1/schedule/generate with minimal valid request."""
    response = client.post("/api/v1/schedule/generate", json=get_minimal_request())

    assert response.status_code == 200
    data = response.json()

    assert data["success"] is True
    assert data["status"] in ["COMPLETE", "PARTIAL"]
    assert len(data["timetables"]) == 1

    timetable = data["timetables"][0]
    assert timetable["class_id"] == "c1"
    assert len(timetable["entries"]) == 10

    friday_assembly = [
        e for e in timetable["entries"] if e["day"] == "Friday" and e["time"] == "08:00-09:00"
    ]
    assert friday_assembly[0]["subject"] == "Assembly"
    assert friday_assembly[0]["teacher"] == "Free"
    assert friday_assembly[0]["is_special_period"] is True

    assert data["stats"]["special_slots"] == 1
    assert data["stats"]["total_slots"] == 10


def test_generate_medium_respects_caps():
    """Test that the medium request never breaks daily caps or double-books."""
    response = client.post("/api/v1/schedule/generate", json=get_medium_request())

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True

    busy = {}
    for timetable in data["timetables"]:
        for entry in timetable["entries"]:
            if entry["teacher"] == "Free":
                continue
            key = (entry["day"], entry["time"], entry["teacher"])
            assert key not in busy, f"Teacher double-booked: {key}"
            busy[key] = timetable["class_id"]

            # Break slot on Monday is never assigned
            assert not (entry["day"] == "Monday" and entry["time"] == "10:00-11:00")

    # Alice only teaches within her windows and at most 3 periods a day
    alice = [k for k in busy if k[2] == "Alice Smith"]
    for day in ["Monday", "Tuesday"]:
        assert len([k for k in alice if k[0] == day]) <= 3


def test_generate_invalid_configuration():
    """End time before start time is reported, not silently defaulted."""
    request = get_minimal_request()
    request["config"]["start_time"] = "14:00"
    request["config"]["end_time"] = "12:00"

    response = client.post("/api/v1/schedule/generate", json=request)
    assert response.status_code == 200
    data = response.json()

    assert data["status"] == "INVALID"
    assert data["success"] is False
    codes = {m["code"] for m in data["messages"]["error_message"]}
    assert codes == {"INVALID_CONFIGURATION"}


def test_generate_invalid_time_format():
    request = get_minimal_request()
    request["config"]["start_time"] = "8am"

    response = client.post("/api/v1/schedule/generate", json=request)
    data = response.json()

    assert data["status"] == "INVALID"
    assert "Invalid start time" in data["messages"]["error_message"][0]["description"]


def test_generate_invalid_data():
    """Classes without subjects and subjects without teachers block generation."""
    request = get_minimal_request()
    request["classes"].append({"id": "c2", "name": "Grade 7B", "room": "R102", "subjects": []})
    request["subjects"].append({"id": "art", "name": "Art", "credits": 1, "weekly_sessions": 1})

    response = client.post("/api/v1/schedule/generate", json=request)
    data = response.json()

    assert data["status"] == "INVALID"
    descriptions = [m["description"] for m in data["messages"]["error_message"]]
    assert "Class Grade 7B has no subjects assigned" in descriptions
    assert "Subject Art has no qualified teachers" in descriptions
    assert data["timetables"] == []


def test_class_endpoint():
    response = client.post("/api/v1/schedule/classes/c1", json=get_minimal_request())

    assert response.status_code == 200
    data = response.json()
    assert data["timetable"]["class_name"] == "Grade 7A"
    assert data["timetable"]["room"] == "R101"

    days = [e["day"] for e in data["timetable"]["entries"]]
    # Ordered by day, then time
    assert days == sorted(days, key=["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"].index)


def test_generate_duplicate_day():
    request = get_minimal_request()
    request["config"]["days"] = ["Monday", "Monday"]

    response = client.post("/api/v1/schedule/generate", json=request)
    data = response.json()

    assert data["status"] == "INVALID"
    descriptions = [m["description"] for m in data["messages"]["error_message"]]
    assert "Duplicate day 'Monday'" in descriptions


def test_view_endpoints_report_unexpected_errors(monkeypatch):
    """Failures while building a view come back as ERROR, not a bare 500."""
    def fail(self, record_id):
        raise RuntimeError("view exploded")

    monkeypatch.setattr(TimetableScheduler, "build_class_timetable", fail)
    monkeypatch.setattr(TimetableScheduler, "build_teacher_timetable", fail)

    for url in ["/api/v1/schedule/classes/c1", "/api/v1/schedule/teachers/t1"]:
        response = client.post(url, json=get_minimal_request())
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ERROR"
        assert data["timetable"] is None
        error = data["messages"]["error_message"][0]
        assert error["code"] == "GENERATION_ERROR"
        assert error["description"] == "view exploded"


def test_class_endpoint_unknown_class():
    response = client.post("/api/v1/schedule/classes/missing", json=get_minimal_request())
    assert response.status_code == 404


def test_teacher_endpoint():
    response = client.post("/api/v1/schedule/teachers/t1", json=get_minimal_request())

    assert response.status_code == 200
    data = response.json()
    entries = data["timetable"]["entries"]
    assert len(entries) == 10

    teaching = [e for e in entries if e["status"] == "Teaching"]
    assert teaching
    for entry in teaching:
        assert entry["class_name"] == "Grade 7A"
        assert entry["subject"] == "Mathematics"
        assert entry["room"] == "R101"

    for entry in entries:
        if entry["status"] == "Free":
            assert entry["room"] == "Staff Room"


def test_teacher_endpoint_unknown_teacher():
    response = client.post("/api/v1/schedule/teachers/nobody", json=get_minimal_request())
    assert response.status_code == 404


def test_remaining_sessions_reported():
    """Weekly quota larger than the week can hold shows up as remaining sessions."""
    request = get_minimal_request()
    request["subjects"][0]["weekly_sessions"] = 8
    request["config"]["fill_all_periods"] = False

    response = client.post("/api/v1/schedule/generate", json=request)
    data = response.json()

    # Five days, one math lesson per day, Friday's first period is assembly
    assert data["timetables"][0]["remaining_required_sessions"] == 3
    assert data["success"] is True
    assert data["status"] == "PARTIAL"


def test_strict_mode_reports_failure():
    """Strict mode fails when too many periods would stay free."""
    request = get_minimal_request()
    request["config"]["strict_mode"] = True
    request["config"]["max_free_ratio"] = 0.0

    response = client.post("/api/v1/schedule/generate", json=request)
    data = response.json()

    assert data["success"] is False
    assert data["status"] == "FAILED"
    codes = {m["code"] for m in data["messages"]["error_message"]}
    assert "TOO_MANY_FREE_PERIODS" in codes


def test_validation_error_format():
    """Test that validation errors return human-friendly format."""
    invalid_request = {
        "teachers": [],
        # Missing classes, subjects and config
    }

    response = client.post("/api/v1/schedule/generate", json=invalid_request)

    assert response.status_code == 422
    data = response.json()
    assert "errors" in data
    assert isinstance(data["errors"], dict)

    for field, messages in data["errors"].items():
        assert isinstance(messages, list)
        assert len(messages) > 0
        assert isinstance(messages[0], str)
    assert "Config" in data["errors"]


def test_negative_rating_rejected():
    request = get_minimal_request()
    request["teachers"][0]["rating"] = -1

    response = client.post("/api/v1/schedule/generate", json=request)
    assert response.status_code == 422
    errors = response.json()["errors"]
    assert errors["Teachers -> 0 -> Rating"] == ["Teachers -> 0 -> Rating must be at least 0."]


def test_free_ratio_bounds_reported():
    request = get_minimal_request()
    request["config"]["max_free_ratio"] = 1.5
    request["subjects"][0]["credits"] = 0

    response = client.post("/api/v1/schedule/generate", json=request)
    assert response.status_code == 422
    errors = response.json()["errors"]
    assert errors["Config -> Max Free Ratio"] == ["Config -> Max Free Ratio must be at most 1."]
    assert errors["Subjects -> 0 -> Credits"] == ["Subjects -> 0 -> Credits must be at least 1."]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
