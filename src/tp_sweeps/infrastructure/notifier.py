"""ResendNotifier — NotificationSenderProtocol over the Resend HTTP API."""

import logging

import httpx

from config.settings import settings
from src.tp_sweeps.domain.reminder import EmailTemplate

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


class ResendNotifier:
    def __init__(
        self,
        api_key: str | None = None,
        sender: str | None = None,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key if api_key is not None else settings.RESEND_API_KEY
        self._sender = sender or settings.EMAIL_FROM
        self._timeout = timeout_seconds or settings.NOTIFIER_TIMEOUT_SECONDS
        self._transport = transport

    async def send(self, to: str, template: EmailTemplate) -> bool:
        if not self._api_key:
            logger.warning("RESEND_API_KEY not set; reminder to %s not sent", to)
            return False
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                resp = await client.post(
                    RESEND_API_URL,
                    headers={"Authorization": f"Bearer {self._api_key}"},
                    json={
                        "from": self._sender,
                        "to": [to],
                        "subject": template.subject,
                        "html": template.html,
                        "text": template.text,
                    },
                )
        except httpx.HTTPError as exc:
            logger.warning("Email to %s failed: %s", to, exc)
            return False
        if resp.is_success:
            return True
        logger.warning("Email to %s rejected: %d %s", to, resp.status_code, resp.text[:200])
        return False
