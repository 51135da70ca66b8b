"""Password hashing, JWT issuing/verification and one-time token generation"""

import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt

from lumabank.config import settings
from lumabank.domain.exceptions import AuthenticationError
from lumabank.domain.models import Principal, Role


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    salt = bcrypt.gensalt(rounds=rounds or settings.bcrypt_rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def create_access_token(principal: Principal, expires_minutes: Optional[int] = None) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(principal.subject_id),
        "email": principal.email,
        "role": principal.role.value,
        "iat": now,
        "exp": now + timedelta(minutes=expires_minutes or settings.jwt_expires_minutes),
    }
    if principal.account_number:
        payload["account_number"] = principal.account_number
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Principal:
    """
    Verify a bearer token's signature and expiry.

    Raises:
        AuthenticationError: token is expired, tampered with or malformed
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
        return Principal(
            subject_id=uuid.UUID(payload["sub"]),
            email=payload["email"],
            role=Role(payload["role"]),
            account_number=payload.get("account_number"),
        )
    except jwt.ExpiredSignatureError as e:
        raise AuthenticationError("Token has expired") from e
    except (jwt.InvalidTokenError, KeyError, ValueError) as e:
        raise AuthenticationError("Invalid token") from e


def generate_one_time_token() -> str:
    """64 hex chars for email verification and password reset links"""
    return secrets.token_hex(32)


def one_time_token_expiry(now: Optional[datetime] = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now + timedelta(hours=settings.verification_token_ttl_hours)


def generate_account_number() -> str:
    """Random 10-digit number that never starts with zero"""
    return str(secrets.randbelow(9_000_000_000) + 1_000_000_000)
