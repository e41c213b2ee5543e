"""Stripe webhook endpoint.

The signature is checked against the raw body, so the route reads
request.body() instead of a parsed model.
"""

from dataclasses import asdict
from typing import Annotated

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.tp_common.database import get_db_session
from src.tp_common.response import ApiResponse, success_response
from src.tp_webhooks.application.service import WebhookService

router = APIRouter(prefix="/stripe", tags=["webhooks"])
_service = WebhookService()


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db_session)],
    stripe_signature: Annotated[str | None, Header(alias="Stripe-Signature")] = None,
) -> ApiResponse:
    payload = await request.body()
    result = await _service.process(db, payload, stripe_signature)
    return success_response(asdict(result), request)
