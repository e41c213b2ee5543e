"""FastAPI dependencies guarding operator and cron endpoints.

Usage:
    @router.get("/admin/thing")
    async def thing(operator: Annotated[Operator, Depends(require_operator)]): ...

    @router.post("/cron/job", dependencies=[Depends(verify_cron_secret)])
    async def job(): ...
"""

import hmac
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from config.settings import settings
from src.tp_common.errors import InvalidCronSecretError, InvalidOperatorTokenError
from src.tp_gateway.auth.jwt_handler import decode_operator_token

# auto_error=False so a missing header maps to our own 401 envelope
bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Operator:
    subject: str


async def require_operator(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> Operator:
    if credentials is None:
        raise InvalidOperatorTokenError()
    payload = decode_operator_token(credentials.credentials)
    return Operator(subject=str(payload["sub"]))


async def verify_cron_secret(
    authorization: Annotated[str | None, Header()] = None,
) -> None:
    """Accept only `Authorization: Bearer <CRON_SECRET>`, compared in constant time."""
    expected = f"Bearer {settings.CRON_SECRET}"
    if not authorization or not hmac.compare_digest(
        authorization.encode(), expected.encode()
    ):
        raise InvalidCronSecretError()
