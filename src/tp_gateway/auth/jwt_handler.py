"""Operator JWT creation and verification.

Operator tokens are HS256-signed with JWT_SECRET and carry `role: "admin"`.
They are minted by ops tooling (create_operator_token); this service only
verifies them.
"""

from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from config.settings import settings
from src.tp_common.errors import InvalidOperatorTokenError, OperatorRoleRequiredError

OPERATOR_ROLE = "admin"

_ALGORITHM = settings.JWT_ALGORITHM


def create_operator_token(
    subject: str,
    role: str = OPERATOR_ROLE,
    expires_minutes: int | None = None,
) -> str:
    now = datetime.now(UTC)
    expire = timedelta(minutes=expires_minutes or settings.OPERATOR_TOKEN_EXPIRE_MINUTES)
    payload = {
        "sub": subject,
        "role": role,
        "iat": now,
        "exp": now + expire,
    }
    return str(jwt.encode(payload, settings.JWT_SECRET, algorithm=_ALGORITHM))


def decode_operator_token(token: str) -> dict[str, str]:
    """Decode a token and require the operator role.

    Raises:
        InvalidOperatorTokenError: bad signature, malformed or expired.
        OperatorRoleRequiredError: valid token without role == "admin".
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[_ALGORITHM],  # Explicit list prevents algorithm confusion
        )
    except JWTError:
        raise InvalidOperatorTokenError() from None

    if not payload.get("sub"):
        raise InvalidOperatorTokenError()
    if payload.get("role") != OPERATOR_ROLE:
        raise OperatorRoleRequiredError()
    return payload
