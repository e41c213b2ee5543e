"""HTTP-level tests: envelope, auth guards and routing via ASGITransport."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import AsyncClient

from config.settings import settings
from src.main import app
from src.tp_admin.api import router as admin_router_module
from src.tp_admin.application.service import PayoutsOverviewService
from src.tp_common.database import get_db_session
from src.tp_gateway.auth.jwt_handler import create_operator_token
from src.tp_reconciliation.api import router as reconciliation_router_module
from src.tp_reconciliation.application.engine import ResyncResult
from src.tp_sweeps.api import router as cron_router_module
from src.tp_tips.domain.models import PayoutBucket, PayoutSummary
from tests.unit.fakes import make_db, make_tip


@pytest.fixture(autouse=True)
def mock_db():
    db = make_db()

    async def _override():
        yield db

    app.dependency_overrides[get_db_session] = _override
    yield db
    app.dependency_overrides.clear()


def _operator_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {create_operator_token('ops@example.com')}"}


def _cron_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {settings.CRON_SECRET}"}


class TestHealth:
    async def test_health(self, client: AsyncClient) -> None:
        resp = await client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"
        assert resp.headers["X-Request-ID"].startswith("req_")


class TestCheckout:
    async def test_below_minimum_is_400(self, client: AsyncClient) -> None:
        resp = await client.post(
            "/api/v1/tips/checkout",
            json={"tip_amount_cents": 50, "is_guest": True, "broadcaster_user_id": "dj-1"},
        )
        assert resp.status_code == 400
        body = resp.json()
        assert body["code"] == 2001
        assert body["data"] is None


class TestWebhook:
    async def test_bad_signature_is_400(self, client: AsyncClient) -> None:
        resp = await client.post(
            "/api/v1/stripe/webhook",
            content=b'{"id": "evt_1"}',
            headers={"Stripe-Signature": "t=1,v1=deadbeef"},
        )
        assert resp.status_code == 400
        assert resp.json()["code"] == 1004

    async def test_missing_signature_is_400(self, client: AsyncClient) -> None:
        resp = await client.post("/api/v1/stripe/webhook", content=b"{}")
        assert resp.status_code == 400


class TestCron:
    async def test_requires_secret(self, client: AsyncClient) -> None:
        resp = await client.post("/api/v1/cron/process-pending-tips")
        assert resp.status_code == 401
        assert resp.json()["code"] == 1003

    async def test_process_pending(self, client: AsyncClient, monkeypatch) -> None:
        engine = MagicMock()
        engine.sweep = AsyncMock(return_value=ResyncResult(processed=2, transferred=2))
        monkeypatch.setattr(cron_router_module, "_engine", engine)

        resp = await client.get("/api/v1/cron/process-pending-tips", headers=_cron_headers())

        assert resp.status_code == 200
        assert resp.json()["data"]["transferred"] == 2


class TestAdmin:
    async def test_overview_requires_operator(self, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/admin/payouts")
        assert resp.status_code == 401
        assert resp.json()["code"] == 1001

    async def test_overview_rejects_non_admin(self, client: AsyncClient) -> None:
        token = create_operator_token("dj-1", role="broadcaster")
        resp = await client.get(
            "/api/v1/admin/payouts", headers={"Authorization": f"Bearer {token}"}
        )
        assert resp.status_code == 403

    async def test_overview(self, client: AsyncClient, monkeypatch) -> None:
        ledger = AsyncMock()
        ledger.summarize_payouts.return_value = PayoutSummary(
            failed=PayoutBucket(cents=700, count=1)
        )
        ledger.list_for_overview.return_value = [make_tip("tip-1")]
        monkeypatch.setattr(
            admin_router_module, "_service", PayoutsOverviewService(ledger=ledger)
        )

        resp = await client.get(
            "/api/v1/admin/payouts?status=failed", headers=_operator_headers()
        )

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["totals"]["failed"] == {"cents": 700, "display": "$7.00", "count": 1}
        assert data["tips"][0]["payout_status"] == "pending"

    async def test_resync(self, client: AsyncClient, monkeypatch) -> None:
        engine = MagicMock()
        engine.resync = AsyncMock(
            return_value=ResyncResult(
                processed=3, transferred=2, failed=1, total_transferred_cents=1500
            )
        )
        monkeypatch.setattr(reconciliation_router_module, "_engine", engine)

        resp = await client.post(
            "/api/v1/admin/payouts/resync",
            json={"broadcaster_user_id": "dj-1"},
            headers=_operator_headers(),
        )

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["transferred"] == 2
        assert data["total_transferred_display"] == "$15.00"
        engine.resync.assert_awaited_once()
