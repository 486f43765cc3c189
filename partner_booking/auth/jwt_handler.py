from datetime import datetime, timedelta, timezone

import jwt

from partner_booking.core import config


def create_access_token(subject: str, expires_minutes: int | None = None) -> str:
    """Issue a bearer token for ``subject`` (a user email).

    Production tokens come from the identity provider; this helper exists for
    tests and local development against the same secret.
    """
    expire_minutes = expires_minutes or config.JWT_EXPIRES_MINUTES
    issued_at = datetime.now(timezone.utc)
    payload = {"sub": subject, "exp": issued_at + timedelta(minutes=expire_minutes), "iat": issued_at}
    return jwt.encode(payload, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    return jwt.decode(token, config.JWT_SECRET_KEY, algorithms=[config.JWT_ALGORITHM])
