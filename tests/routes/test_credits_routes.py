"""
Route tests for /api/v1/credits.
"""

import pytest

from finsage.main import app
from finsage.routes.v1 import credits
from finsage.services.credit_service import CreditService

BASE = "/api/v1/credits"


@pytest.fixture
def credit_client(client, db, mock_notification_service):
    app.dependency_overrides[credits.get_credit_service] = lambda: CreditService(
        db, notification_service=mock_notification_service
    )
    return client


def _submit(client, headers, amount=5, service_type="coaching"):
    return client.post(
        f"{BASE}/requests",
        json={"requested_amount": amount, "service_type": service_type, "reason": "Quarterly plan review"},
        headers=headers,
    )


def test_request_approve_and_balance(credit_client, auth_headers_individual, auth_headers_admin):
    submitted = _submit(credit_client, auth_headers_individual)
    assert submitted.status_code == 200
    request_id = submitted.json()["id"]
    assert submitted.json()["status"] == "pending"

    decided = credit_client.post(
        f"{BASE}/requests/{request_id}/decision",
        json={"approve": True, "admin_notes": "ok"},
        headers=auth_headers_admin,
    )
    replay = credit_client.post(
        f"{BASE}/requests/{request_id}/decision", json={"approve": True}, headers=auth_headers_admin
    )
    balances = credit_client.get(f"{BASE}/balances", headers=auth_headers_individual)

    assert decided.json() == {"success": True, "already_processed": False, "status": "approved", "balance": 5}
    assert replay.json()["already_processed"] is True
    assert balances.json()["balances"] == {"coaching": 5, "short_session": 0}


def test_invalid_amount(credit_client, auth_headers_individual):
    response = _submit(credit_client, auth_headers_individual, amount=0)

    assert response.status_code == 400
    assert response.json()["code"] == "INVALID_AMOUNT"


def test_non_admin_cannot_decide(credit_client, auth_headers_individual):
    request_id = _submit(credit_client, auth_headers_individual).json()["id"]

    response = credit_client.post(
        f"{BASE}/requests/{request_id}/decision", json={"approve": True}, headers=auth_headers_individual
    )

    assert response.status_code == 403
    assert response.json()["success"] is False


def test_admin_lists_pending(credit_client, auth_headers_individual, auth_headers_admin):
    _submit(credit_client, auth_headers_individual)

    response = credit_client.get(f"{BASE}/requests", params={"status": "pending"}, headers=auth_headers_admin)

    assert response.status_code == 200
    assert len(response.json()["requests"]) == 1


def test_book_session_with_credits(
    credit_client, auth_headers_individual, auth_headers_admin, make_coaching_session
):
    session = make_coaching_session(credits_required=2)
    request_id = _submit(credit_client, auth_headers_individual, amount=3).json()["id"]
    credit_client.post(f"{BASE}/requests/{request_id}/decision", json={"approve": True}, headers=auth_headers_admin)

    booked = credit_client.post(f"{BASE}/sessions/{session.id}/book", headers=auth_headers_individual)
    short = credit_client.post(f"{BASE}/sessions/{session.id}/book", headers=auth_headers_individual)

    assert booked.status_code == 200
    assert booked.json()["booking"]["credits_used"] == 2
    assert booked.json()["session_time"] == "10:00:00"
    assert short.status_code == 409
    balances = credit_client.get(f"{BASE}/balances", headers=auth_headers_individual).json()["balances"]
    assert balances["coaching"] == 1


def test_insufficient_credits(credit_client, auth_headers_individual, make_coaching_session):
    session = make_coaching_session(credits_required=1)

    response = credit_client.post(f"{BASE}/sessions/{session.id}/book", headers=auth_headers_individual)

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "INSUFFICIENT_CREDITS"
    assert body["details"] == {"required": 1, "available": 0}
