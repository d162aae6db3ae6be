from contextlib import contextmanager
from datetime import timedelta
from types import SimpleNamespace

from fastapi.testclient import TestClient

from app.core.database import get_db
from app.core.security import create_access_token
from app.main import app
from app.models import SlotType, UserRole
from app.services.slots import create_slot
from app.utils.dates import utcnow


class _StubQuery:
    def __init__(self, first_result=None):
        self._first = first_result

    def filter(self, *args, **kwargs):
        return self

    def first(self):
        return self._first


class _StubSession:
    def __init__(self, current_user):
        self._current_user = current_user

    def query(self, *args, **kwargs):
        # get_current_user -> query(User).filter(...).first()
        return _StubQuery(first_result=self._current_user)


@contextmanager
def _client(session):
    app.dependency_overrides.clear()

    def _override_get_db():
        yield session

    app.dependency_overrides[get_db] = _override_get_db
    try:
        with TestClient(app) as client:
            yield client
    finally:
        app.dependency_overrides.clear()


def _auth_headers(user):
    token = create_access_token(str(user.id), user.role.value)
    return {"Authorization": f"Bearer {token}"}


def test_announce_requires_admin():
    agent = SimpleNamespace(id=1, full_name="Agent", role=UserRole.AGENT, is_active=True, is_approved=True)
    with _client(_StubSession(agent)) as client:
        res = client.post("/api/v1/draws/1/announce", headers=_auth_headers(agent), json={"winning_number": 7})
    assert res.status_code == 403
    assert res.json()["detail"] == "Admin access required"


def test_missing_token_is_unauthorized():
    with _client(_StubSession(None)) as client:
        res = client.get("/api/v1/wallet/me")
    assert res.status_code == 401


def test_pending_agent_cannot_bid():
    agent = SimpleNamespace(id=1, full_name="Agent", role=UserRole.AGENT, is_active=True, is_approved=False)
    with _client(_StubSession(agent)) as client:
        res = client.post(
            "/api/v1/bids",
            headers=_auth_headers(agent),
            json={"slot_id": 1, "customer_name": "Ama", "customer_phone": "0711111111", "number": 7, "count": 1},
        )
    assert res.status_code == 403
    assert res.json()["detail"] == "Approved agent access required"


def test_bid_then_wallet_summary(db, agent, ld_slot):
    with _client(db) as client:
        res = client.post(
            "/api/v1/bids",
            headers=_auth_headers(agent),
            json={"slot_id": ld_slot.id, "customer_name": "Ama", "customer_phone": "0711111111", "number": 7, "count": 10},
        )
        assert res.status_code == 201
        assert res.json()["unique_bid_id"].endswith("#0711111111#7#10")

        wallet = client.get("/api/v1/wallet/me", headers=_auth_headers(agent))
        remaining = client.get(
            "/api/v1/bids/remaining",
            headers=_auth_headers(agent),
            params={"slot_id": ld_slot.id, "number": 7},
        )

    assert wallet.status_code == 200
    assert wallet.json()["total_balance"] == "-9.00"
    assert wallet.json()["commission_earned"] == "1.00"
    assert remaining.json() == {"number": 7, "used": 10, "max_count": 80, "remaining": 70}


def test_bid_service_error_carries_code(db, agent, ld_slot):
    with _client(db) as client:
        res = client.post(
            "/api/v1/bids",
            headers=_auth_headers(agent),
            json={"slot_id": ld_slot.id, "customer_name": "Ama", "customer_phone": "0711111111", "number": 40, "count": 1},
        )
    assert res.status_code == 400
    assert res.json()["detail"]["code"] == "VALIDATION_FAILED"


def test_admin_announces_once(db, admin):
    slot = create_slot(db, SlotType.LD, utcnow() - timedelta(minutes=1))

    with _client(db) as client:
        first = client.post(f"/api/v1/draws/{slot.id}/announce", headers=_auth_headers(admin), json={"winning_number": 7})
        second = client.post(f"/api/v1/draws/{slot.id}/announce", headers=_auth_headers(admin), json={"winning_number": 7})
        fetched = client.get(f"/api/v1/draws/{slot.id}", headers=_auth_headers(admin))

    assert first.status_code == 200
    body = first.json()
    assert body["draw"]["winner"] == "7"
    assert body["credited_winners"] == 0
    assert body["message"] == "LD result announced"
    assert second.status_code == 409
    assert second.json()["detail"]["code"] == "RESULT_ALREADY_ANNOUNCED"
    assert fetched.json()["winner"] == "7"
