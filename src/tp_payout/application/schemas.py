"""Pydantic schemas for payout account endpoints."""

from pydantic import BaseModel

from src.tp_payout.application.directory import ActivationStatus
from src.tp_reconciliation.application.schemas import ResyncResponse


class AccountStatusResponse(BaseModel):
    user_id: str
    external_account_id: str
    activated: bool
    newly_activated: bool
    reconciliation: ResyncResponse | None = None

    @classmethod
    def from_status(
        cls, status: ActivationStatus, reconciliation: ResyncResponse | None = None
    ) -> "AccountStatusResponse":
        return cls(
            user_id=status.user_id,
            external_account_id=status.external_account_id,
            activated=status.activated,
            newly_activated=status.newly_activated,
            reconciliation=reconciliation,
        )
