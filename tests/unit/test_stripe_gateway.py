"""Tests for StripeGateway: error taxonomy, transfer params, webhook signatures."""

import hashlib
import hmac
import json
import time
from unittest.mock import AsyncMock, MagicMock

import pytest
import stripe

from src.tp_common.errors import (
    InvalidWebhookSignatureError,
    PermanentProcessorError,
    TransientProcessorError,
)
from src.tp_payout.infrastructure.stripe_gateway import StripeGateway, translate_stripe_error

WEBHOOK_SECRET = "whsec_test_secret"


def _gateway() -> StripeGateway:
    return StripeGateway(
        api_key="sk_test_123", webhook_secret=WEBHOOK_SECRET, timeout_seconds=5
    )


def _signed(payload: str, secret: str = WEBHOOK_SECRET) -> str:
    timestamp = int(time.time())
    signature = hmac.new(
        secret.encode(), f"{timestamp}.{payload}".encode(), hashlib.sha256
    ).hexdigest()
    return f"t={timestamp},v1={signature}"


class TestTranslateStripeError:
    def test_connection_error_is_transient(self) -> None:
        err = translate_stripe_error(stripe.APIConnectionError("connection reset"))
        assert isinstance(err, TransientProcessorError)

    def test_rate_limit_is_transient(self) -> None:
        err = translate_stripe_error(stripe.RateLimitError("slow down", http_status=429))
        assert isinstance(err, TransientProcessorError)

    def test_server_error_is_transient(self) -> None:
        err = translate_stripe_error(stripe.APIError("internal", http_status=500))
        assert isinstance(err, TransientProcessorError)

    def test_invalid_destination_is_permanent(self) -> None:
        exc = stripe.InvalidRequestError(
            "No such destination", param="destination", code="resource_missing",
            http_status=400,
        )
        err = translate_stripe_error(exc)
        assert isinstance(err, PermanentProcessorError)
        assert "resource_missing" in err.message

    def test_permission_error_is_permanent(self) -> None:
        err = translate_stripe_error(stripe.PermissionError("forbidden", http_status=403))
        assert isinstance(err, PermanentProcessorError)


class TestCreateTransfer:
    async def test_passes_idempotency_key(self) -> None:
        gateway = _gateway()
        client = MagicMock()
        client.transfers.create_async = AsyncMock(return_value=MagicMock(id="tr_1"))
        gateway._client = client

        result = await gateway.create_transfer(
            amount_cents=1000,
            currency="usd",
            destination="acct_1",
            transfer_group="tip-1",
            metadata={"tip_id": "tip-1"},
            idempotency_key="tip-transfer-tip-1-0",
        )

        assert result.id == "tr_1"
        kwargs = client.transfers.create_async.call_args.kwargs
        assert kwargs["options"] == {"idempotency_key": "tip-transfer-tip-1-0"}
        assert kwargs["params"]["amount"] == 1000
        assert kwargs["params"]["transfer_group"] == "tip-1"

    async def test_connection_failure_raises_transient(self) -> None:
        gateway = _gateway()
        client = MagicMock()
        client.transfers.create_async = AsyncMock(
            side_effect=stripe.APIConnectionError("timed out")
        )
        gateway._client = client

        with pytest.raises(TransientProcessorError):
            await gateway.create_transfer(
                amount_cents=1000,
                currency="usd",
                destination="acct_1",
                transfer_group="tip-1",
                metadata={},
                idempotency_key="tip-transfer-tip-1-0",
            )


class TestRetrieveAccount:
    async def test_maps_flags(self) -> None:
        gateway = _gateway()
        client = MagicMock()
        client.accounts.retrieve_async = AsyncMock(
            return_value=MagicMock(id="acct_1", charges_enabled=True, payouts_enabled=False)
        )
        gateway._client = client

        account = await gateway.retrieve_account("acct_1")

        assert account.charges_enabled is True
        assert account.ready is False


class TestConstructEvent:
    def test_valid_signature(self) -> None:
        payload = json.dumps(
            {"id": "evt_1", "type": "transfer.created", "data": {"object": {"id": "tr_1"}}}
        )
        event = _gateway().construct_event(payload.encode(), _signed(payload))
        assert event.id == "evt_1"
        assert event.type == "transfer.created"
        assert event.data == {"id": "tr_1"}

    def test_wrong_secret_rejected(self) -> None:
        payload = json.dumps({"id": "evt_1", "type": "x", "data": {"object": {}}})
        with pytest.raises(InvalidWebhookSignatureError):
            _gateway().construct_event(payload.encode(), _signed(payload, "whsec_other"))

    def test_tampered_body_rejected(self) -> None:
        payload = json.dumps({"id": "evt_1", "type": "x", "data": {"object": {}}})
        header = _signed(payload)
        with pytest.raises(InvalidWebhookSignatureError):
            _gateway().construct_event(payload.replace("x", "y").encode(), header)

    def test_missing_header_rejected(self) -> None:
        with pytest.raises(InvalidWebhookSignatureError):
            _gateway().construct_event(b"{}", "")
