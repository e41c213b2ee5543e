"""Notification sender Protocol.

send() reports delivery as a bool and never raises: a failed reminder is
logged and retried on a later run, it must not abort the sweep.
"""

from typing import Protocol

from src.tp_sweeps.domain.reminder import EmailTemplate


class NotificationSenderProtocol(Protocol):
    async def send(self, to: str, template: EmailTemplate) -> bool: ...
