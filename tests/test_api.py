from datetime import date, datetime, time

import pytest

from app.core.config import settings
from app.models import SharePermission

from conftest import OTHER_USER_ID, auth_headers

API = settings.API_V1_PREFIX


@pytest.fixture()
def todays_task(make_task):
    return make_task(start_datetime=datetime.combine(date.today(), time(9, 0)))


def attach_daily_rule(client, task_id: int) -> dict:
    response = client.post(
        f"{API}/tasks/{task_id}/recurrence",
        json={"kind": "daily"},
        headers=auth_headers(),
    )
    assert response.status_code == 200
    return response.json()


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_missing_authorization_header(client, todays_task):
    response = client.get(f"{API}/tasks/{todays_task.id}/recurrence")

    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_invalid_token(client, todays_task):
    response = client.get(
        f"{API}/tasks/{todays_task.id}/recurrence",
        headers={"Authorization": "Bearer not-a-token"},
    )

    assert response.status_code == 401
    assert response.json() == {
        "success": False,
        "error": {"code": "AUTH_FAILED", "message": "Invalid or expired token", "details": {}},
    }


def test_recurring_task_lifecycle(client, todays_task):
    task_id = todays_task.id

    rule = client.post(
        f"{API}/tasks/{task_id}/recurrence",
        json={"kind": "weekly", "interval": 1, "days_of_week": [6, 5, 4, 3, 2, 1, 0]},
        headers=auth_headers(),
    ).json()
    assert rule["days_of_week"] == [0, 1, 2, 3, 4, 5, 6]
    assert rule["recurrence_description"] == "Weekly on Mon, Tue, Wed, Thu, Fri, Sat, Sun"

    fetched = client.get(f"{API}/tasks/{task_id}/recurrence", headers=auth_headers())
    assert fetched.json()["id"] == rule["id"]

    generated = client.post(
        f"{API}/tasks/{task_id}/instances/generate",
        params={"max_instances": 5},
        headers=auth_headers(),
    ).json()
    assert generated["generated"] == 5
    first = generated["instances"][0]
    assert first["scheduled_date"] == datetime.combine(date.today(), time(9, 0)).isoformat()
    assert first["effective_title"] == "Water the plants"

    again = client.post(
        f"{API}/tasks/{task_id}/instances/generate",
        params={"max_instances": 5, "days_ahead": 4},
        headers=auth_headers(),
    ).json()
    assert again == {"generated": 0, "instances": []}

    patched = client.patch(
        f"{API}/instances/{first['id']}",
        json={"modified_title": "Water the cactus", "modified_time": "07:30:00"},
        headers=auth_headers(),
    ).json()
    assert patched["is_modified"] is True
    assert patched["effective_title"] == "Water the cactus"
    assert patched["effective_datetime"].endswith("T07:30:00")

    deleted = client.delete(f"{API}/tasks/{task_id}/recurrence", headers=auth_headers())
    assert deleted.status_code == 200

    listed = client.get(f"{API}/tasks/{task_id}/instances", headers=auth_headers()).json()
    assert len(listed) == 5
    assert listed[0]["modified_title"] == "Water the cactus"

    response = client.post(f"{API}/tasks/{task_id}/instances/generate", headers=auth_headers())
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "TASK_NOT_RECURRING"


def test_rule_update_over_http(client, todays_task):
    attach_daily_rule(client, todays_task.id)

    response = client.patch(
        f"{API}/tasks/{todays_task.id}/recurrence",
        json={"interval": 3, "end_type": "count", "end_count": 10},
        headers=auth_headers(),
    )

    assert response.status_code == 200
    assert response.json()["recurrence_description"] == "Every 3 days, 10 times"


def test_invalid_rule_reports_field(client, todays_task):
    response = client.post(
        f"{API}/tasks/{todays_task.id}/recurrence",
        json={"kind": "weekly", "days_of_week": []},
        headers=auth_headers(),
    )

    assert response.status_code == 422
    error = response.json()["error"]
    assert error["code"] == "MISSING_WEEKDAYS"
    assert error["details"] == {"field": "days_of_week"}


def test_out_of_range_weekday_is_rejected(client, todays_task):
    response = client.post(
        f"{API}/tasks/{todays_task.id}/recurrence",
        json={"kind": "weekly", "days_of_week": [7]},
        headers=auth_headers(),
    )

    assert response.status_code == 422
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == "VALIDATION_ERROR"
    assert body["error"]["details"]["errors"]


def test_second_rule_conflicts(client, todays_task):
    attach_daily_rule(client, todays_task.id)

    response = client.post(
        f"{API}/tasks/{todays_task.id}/recurrence",
        json={"kind": "yearly"},
        headers=auth_headers(),
    )

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "RECURRENCE_RULE_EXISTS"


def test_max_instances_above_limit_is_rejected(client, todays_task):
    attach_daily_rule(client, todays_task.id)

    response = client.post(
        f"{API}/tasks/{todays_task.id}/instances/generate",
        params={"max_instances": settings.MAX_INSTANCES_LIMIT + 1},
        headers=auth_headers(),
    )

    assert response.status_code == 422


def test_view_share_can_read_but_not_change(client, todays_task, share_task):
    attach_daily_rule(client, todays_task.id)
    share_task(todays_task, OTHER_USER_ID, SharePermission.VIEW)
    viewer = auth_headers(OTHER_USER_ID)

    assert client.get(f"{API}/tasks/{todays_task.id}/recurrence", headers=viewer).status_code == 200

    response = client.patch(
        f"{API}/tasks/{todays_task.id}/recurrence", json={"interval": 2}, headers=viewer
    )
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "PERMISSION_DENIED"

    response = client.post(f"{API}/tasks/{todays_task.id}/instances/generate", headers=viewer)
    assert response.status_code == 403


def test_edit_share_can_generate_but_not_reconfigure(client, todays_task, share_task):
    attach_daily_rule(client, todays_task.id)
    share_task(todays_task, OTHER_USER_ID, SharePermission.EDIT)
    editor = auth_headers(OTHER_USER_ID)

    response = client.post(
        f"{API}/tasks/{todays_task.id}/instances/generate",
        params={"max_instances": 2},
        headers=editor,
    )
    assert response.status_code == 200
    assert response.json()["generated"] == 2

    response = client.delete(f"{API}/tasks/{todays_task.id}/recurrence", headers=editor)
    assert response.status_code == 403


def test_strangers_get_not_found(client, todays_task):
    attach_daily_rule(client, todays_task.id)
    stranger = auth_headers(OTHER_USER_ID)

    response = client.get(f"{API}/tasks/{todays_task.id}/recurrence", headers=stranger)
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"

    response = client.post(f"{API}/tasks/{todays_task.id}/instances/generate", headers=stranger)
    assert response.status_code == 404


def test_unknown_instance(client):
    response = client.get(f"{API}/instances/999", headers=auth_headers())

    assert response.status_code == 404
    assert response.json()["error"]["message"] == "Task instance not found"


def test_huge_interval_generates_only_series_start(client, todays_task):
    response = client.post(
        f"{API}/tasks/{todays_task.id}/recurrence",
        json={"kind": "yearly", "interval": 8000},
        headers=auth_headers(),
    )
    assert response.status_code == 200

    response = client.post(
        f"{API}/tasks/{todays_task.id}/instances/generate", headers=auth_headers()
    )

    assert response.status_code == 200
    assert response.json()["generated"] == 1
