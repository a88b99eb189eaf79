from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt

from ambitiouscare.core import config

REQUIRED_CLAIMS = ["sub", "iss", "iat", "exp"]


@dataclass(frozen=True)
class ProfileClaims:
    profile_id: str
    role: str | None
    expires_at: datetime


def issue_profile_token(profile_id: str, role: str | None = None, lifetime: timedelta | None = None) -> str:
    issued_at = datetime.now(timezone.utc)
    lifetime = lifetime or timedelta(minutes=config.JWT_EXPIRES_MINUTES)
    claims = {
        "sub": profile_id,
        "iss": config.JWT_ISSUER,
        "iat": issued_at,
        "exp": issued_at + lifetime,
    }
    if role:
        claims["role"] = role
    return jwt.encode(claims, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def read_profile_token(token: str) -> ProfileClaims:
    """Verify signature, expiry and issuer; raises ``jwt.PyJWTError`` otherwise."""
    payload = jwt.decode(
        token,
        config.JWT_SECRET_KEY,
        algorithms=[config.JWT_ALGORITHM],
        issuer=config.JWT_ISSUER,
        options={"require": REQUIRED_CLAIMS},
    )
    return ProfileClaims(
        profile_id=payload["sub"],
        role=payload.get("role"),
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
    )
