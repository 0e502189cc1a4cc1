"""
Тесты HTTP API (FastAPI TestClient, сервисы замоканы).
"""

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from casebot.api.server import create_app
from casebot.core.exceptions import InsufficientPermissionError, RemoteFetchError
from casebot.models.case import CaseField, CaseRecord
from casebot.models.role import RoleName
from casebot.models.user import User
from casebot.services.notification_service import NotificationReport


@pytest.fixture
def services(mocker):
    services = mocker.MagicMock()
    services.case_service.get_cases = mocker.AsyncMock(
        return_value=[
            CaseRecord(
                row_index=1,
                id="1",
                case_number="А40-1/2026",
                hearing_date="15.03.2026, 10:00",
                hearing_at=datetime(2026, 3, 15, 10, 0, tzinfo=timezone.utc),
                fields=[CaseField(key="col_1", label="Номер дела", value="А40-1/2026", hyperlink="https://kad.arbitr.ru/1")],
            )
        ]
    )
    services.case_service.update_cell = mocker.AsyncMock()
    services.user_service.resolve = mocker.AsyncMock(
        side_effect=lambda telegram_id: User(
            telegram_id=telegram_id, name="Иванов", email="ivanov@firm.ru", role=RoleName.LAWYER, cases=["А40-1/2026"]
        )
        if telegram_id == 200
        else User.guest(telegram_id)
    )
    services.notification_service.check_and_send = mocker.AsyncMock(
        return_value=NotificationReport(cases_checked=3, notifications_sent=2)
    )
    return services


@pytest.fixture
def telegram_app(mocker):
    app = mocker.MagicMock()
    app.initialize = mocker.AsyncMock()
    app.shutdown = mocker.AsyncMock()
    app.process_update = mocker.AsyncMock()
    return app


@pytest.fixture
def client(services, telegram_app):
    with TestClient(create_app(services, telegram_app)) as test_client:
        yield test_client


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["ok"] is True
    assert response.json()["message"] == "Server is running"


def test_lifespan_initializes_bot(services, telegram_app):
    with TestClient(create_app(services, telegram_app)):
        telegram_app.initialize.assert_awaited_once()
    telegram_app.shutdown.assert_awaited_once()


def test_get_cases(client, services):
    response = client.get("/api/cases")

    body = response.json()
    assert response.status_code == 200
    assert body["success"] is True
    assert body["count"] == 1
    case = body["cases"][0]
    assert case["rowIndex"] == 1
    assert case["caseNumber"] == "А40-1/2026"
    assert case["hearingAt"].startswith("2026-03-15T10:00:00")
    assert case["fields"][0]["hyperlink"] == "https://kad.arbitr.ru/1"
    services.case_service.get_cases.assert_awaited_once_with(with_hyperlinks=True)


def test_get_cases_fetch_failure(client, services):
    services.case_service.get_cases.side_effect = RemoteFetchError(403, "API key not valid")

    response = client.get("/api/cases")

    assert response.status_code == 500
    assert response.json()["success"] is False


def test_update_case(client, services):
    response = client.post("/api/update-case", json={"rowIndex": 3, "columnIndex": 17, "value": "15.03.2026, 10:00"})

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "message": "Cell updated successfully",
        "data": {"rowIndex": 3, "columnIndex": 17, "value": "15.03.2026, 10:00"},
    }
    services.case_service.update_cell.assert_awaited_once_with(3, 17, "15.03.2026, 10:00")


@pytest.mark.parametrize(
    "payload",
    [
        {"columnIndex": 1, "value": "x"},
        {"rowIndex": 1, "columnIndex": 1},
        {"rowIndex": "первая", "columnIndex": 1, "value": "x"},
        {"rowIndex": 0, "columnIndex": 1, "value": "x"},
        {"rowIndex": 1, "columnIndex": 33, "value": "x"},
        {"rowIndex": 1, "columnIndex": -1, "value": "x"},
    ],
)
def test_update_case_bad_request(client, services, payload):
    response = client.post("/api/update-case", json=payload)

    assert response.status_code == 400
    assert response.json()["success"] is False
    services.case_service.update_cell.assert_not_awaited()


def test_update_case_invalid_json(client):
    response = client.post("/api/update-case", content="not json", headers={"Content-Type": "application/json"})

    assert response.status_code == 400


def test_update_case_read_only_credentials(client, services):
    services.case_service.update_cell.side_effect = InsufficientPermissionError("read-only")

    response = client.post("/api/update-case", json={"rowIndex": 1, "columnIndex": 1, "value": "x"})

    assert response.status_code == 403


def test_update_case_remote_failure(client, services):
    services.case_service.update_cell.side_effect = RemoteFetchError(500, "backend error")

    response = client.post("/api/update-case", json={"rowIndex": 1, "columnIndex": 1, "value": "x"})

    assert response.status_code == 500


def test_get_roles(client):
    response = client.get("/api/roles", params={"telegram_id": "200"})

    user = response.json()["user"]
    assert response.status_code == 200
    assert user["telegramId"] == 200
    assert user["role"] == "lawyer"
    assert user["roleDisplay"] == "⚖️ Юрист"
    assert user["permissions"]["editCase"] is True
    assert user["permissions"]["deleteCase"] is False
    assert user["cases"] == ["А40-1/2026"]


def test_get_roles_unknown_user_is_guest(client):
    user = client.get("/api/roles", params={"telegram_id": "555"}).json()["user"]

    assert user["role"] == "guest"
    assert not any(user["permissions"].values())


@pytest.mark.parametrize("query", ["", "?telegram_id=", "?telegram_id=abc", "?telegram_id=0", "?telegram_id=--5"])
def test_get_roles_bad_request(client, query):
    response = client.get(f"/api/roles{query}")

    assert response.status_code == 400
    assert response.json()["success"] is False


def test_webhook_feeds_update_to_bot(client, telegram_app, mocker):
    de_json = mocker.patch("casebot.api.server.Update.de_json", return_value="update")

    response = client.post("/webhook", json={"update_id": 1})

    assert response.status_code == 200
    assert response.json() == {"ok": True}
    de_json.assert_called_once_with({"update_id": 1}, telegram_app.bot)
    telegram_app.process_update.assert_awaited_once_with("update")


def test_webhook_never_fails(client, telegram_app, mocker):
    mocker.patch("casebot.api.server.Update.de_json", return_value="update")
    telegram_app.process_update.side_effect = RuntimeError("handler crashed")

    response = client.post("/webhook", json={"update_id": 1})

    assert response.status_code == 200
    assert response.json() == {"ok": True, "error": "handler crashed"}


def test_notifications(client, services, telegram_app):
    response = client.post("/api/notifications")

    body = response.json()
    assert body["success"] is True
    assert body["casesChecked"] == 3
    assert body["notificationsSent"] == 2
    services.notification_service.check_and_send.assert_awaited_once_with(telegram_app.bot)


def test_cors_preflight(client):
    response = client.options(
        "/api/update-case",
        headers={
            "Origin": "https://web.telegram.org",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Content-Type",
        },
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "*"
