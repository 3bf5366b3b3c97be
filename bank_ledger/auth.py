"""
Access Token Module

Bearer tokens issued after a successful login. A token names one account and
expires after ``access_token_minutes``. Expiry is judged by the ledger clock,
not the wall clock, so a ManualClock drives it in tests.
"""

from datetime import datetime, timedelta
from typing import Tuple
import jwt

from .clock import Clock
from .config import LedgerConfig
from .errors import InvalidCredentialsError


JWT_ALGORITHM = "HS256"


def create_access_token(account_number: str, config: LedgerConfig,
                        clock: Clock) -> Tuple[str, datetime]:
    """
    Issue a token for one account.

    Returns:
        (encoded token, expiry time)
    """
    issued_at = clock.now()
    expires_at = issued_at + timedelta(minutes=config.access_token_minutes)
    token_payload = {
        "sub": account_number,
        "iat": int(issued_at.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    token = jwt.encode(token_payload, config.jwt_secret, algorithm=JWT_ALGORITHM)
    return token, expires_at


def decode_access_token(token: str, config: LedgerConfig, clock: Clock) -> str:
    """
    Validate a token and return the account number it was issued for.

    Raises:
        InvalidCredentialsError: bad signature, malformed or expired token
    """
    try:
        payload = jwt.decode(
            token,
            config.jwt_secret,
            algorithms=[JWT_ALGORITHM],
            options={"verify_exp": False, "verify_iat": False}
        )
    except jwt.InvalidTokenError:
        raise InvalidCredentialsError("Invalid token") from None

    account_number = payload.get("sub")
    expires_at = payload.get("exp")
    if not account_number or not isinstance(expires_at, int):
        raise InvalidCredentialsError("Invalid token")
    if clock.now().timestamp() >= expires_at:
        raise InvalidCredentialsError("Token expired", account_number)
    return account_number
