"""StripeGateway — PaymentGatewayProtocol over the stripe library.

Async calls go through StripeClient with the httpx transport so the bounded
STRIPE_TIMEOUT_SECONDS applies to every request. Processor failures are split
into two classes:

  TransientProcessorError: connection errors, timeouts, rate limits, 5xx
  PermanentProcessorError: invalid destination, insufficient balance, other 4xx
"""

import json
import logging

import stripe

from config.settings import settings
from src.tp_common.errors import (
    InvalidWebhookSignatureError,
    PermanentProcessorError,
    ProcessorError,
    TransientProcessorError,
)
from src.tp_payout.domain.models import (
    CheckoutSession,
    ProcessorAccount,
    TransferResult,
    WebhookEvent,
)

logger = logging.getLogger(__name__)

_TRANSIENT_ERRORS = (
    stripe.APIConnectionError,
    stripe.RateLimitError,
)


def translate_stripe_error(exc: stripe.StripeError) -> ProcessorError:
    """Map a stripe exception to the transient / permanent taxonomy."""
    detail = exc.user_message or str(exc) or type(exc).__name__
    if isinstance(exc, _TRANSIENT_ERRORS):
        return TransientProcessorError(detail)
    if exc.http_status is None or exc.http_status >= 500:
        return TransientProcessorError(detail)
    if exc.code:
        detail = f"{exc.code}: {detail}"
    return PermanentProcessorError(detail)


class StripeGateway:
    def __init__(
        self,
        api_key: str | None = None,
        webhook_secret: str | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        self._webhook_secret = (
            webhook_secret if webhook_secret is not None else settings.STRIPE_WEBHOOK_SECRET
        )
        self._client = stripe.StripeClient(
            api_key if api_key is not None else settings.STRIPE_SECRET_KEY,
            http_client=stripe.HTTPXClient(
                timeout=timeout_seconds or settings.STRIPE_TIMEOUT_SECONDS
            ),
            max_network_retries=2,
        )

    async def create_checkout_session(
        self,
        *,
        amount_cents: int,
        currency: str,
        product_name: str,
        description: str,
        metadata: dict[str, str],
        success_url: str,
        cancel_url: str,
        customer_email: str | None = None,
    ) -> CheckoutSession:
        # Funds settle to the platform balance; transfers move them out later.
        params: dict = {
            "mode": "payment",
            "payment_method_types": ["card"],
            "line_items": [
                {
                    "price_data": {
                        "currency": currency,
                        "product_data": {
                            "name": product_name,
                            "description": description,
                        },
                        "unit_amount": amount_cents,
                    },
                    "quantity": 1,
                }
            ],
            "success_url": success_url,
            "cancel_url": cancel_url,
            "metadata": metadata,
        }
        if customer_email:
            params["customer_email"] = customer_email
        try:
            session = await self._client.checkout.sessions.create_async(params=params)
        except stripe.StripeError as exc:
            logger.warning("Stripe checkout session failed: %s", exc)
            raise translate_stripe_error(exc) from exc
        return CheckoutSession(id=session.id, url=session.url)

    async def create_transfer(
        self,
        *,
        amount_cents: int,
        currency: str,
        destination: str,
        transfer_group: str,
        metadata: dict[str, str],
        idempotency_key: str,
    ) -> TransferResult:
        try:
            transfer = await self._client.transfers.create_async(
                params={
                    "amount": amount_cents,
                    "currency": currency,
                    "destination": destination,
                    "transfer_group": transfer_group,
                    "metadata": metadata,
                },
                options={"idempotency_key": idempotency_key},
            )
        except stripe.StripeError as exc:
            logger.warning(
                "Stripe transfer failed (idempotency_key=%s): %s", idempotency_key, exc
            )
            raise translate_stripe_error(exc) from exc
        return TransferResult(id=transfer.id)

    async def retrieve_account(self, account_id: str) -> ProcessorAccount:
        try:
            account = await self._client.accounts.retrieve_async(account_id)
        except stripe.StripeError as exc:
            logger.warning("Stripe account lookup failed for %s: %s", account_id, exc)
            raise translate_stripe_error(exc) from exc
        return ProcessorAccount(
            id=account.id,
            charges_enabled=bool(account.charges_enabled),
            payouts_enabled=bool(account.payouts_enabled),
        )

    def construct_event(self, payload: bytes, sig_header: str) -> WebhookEvent:
        """Verify the Stripe-Signature header, then decode the event body."""
        if not sig_header or not self._webhook_secret:
            raise InvalidWebhookSignatureError()
        body = payload.decode("utf-8")
        try:
            stripe.WebhookSignature.verify_header(body, sig_header, self._webhook_secret)
        except stripe.SignatureVerificationError as exc:
            logger.warning("Webhook signature verification failed: %s", exc)
            raise InvalidWebhookSignatureError() from exc
        try:
            event = json.loads(body)
        except ValueError as exc:
            raise InvalidWebhookSignatureError() from exc
        return WebhookEvent(
            id=str(event.get("id", "")),
            type=str(event.get("type", "")),
            data=(event.get("data") or {}).get("object") or {},
        )
