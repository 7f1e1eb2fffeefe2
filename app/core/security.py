import secrets
from datetime import UTC, datetime, timedelta
from uuid import uuid4

from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=12)

OAUTH_STATE_EXPIRE_MINUTES = 10


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def generate_api_key() -> str:
    return secrets.token_hex(16)


def _encode(claims: dict, expires_in: timedelta) -> str:
    to_encode = {**claims, "exp": datetime.now(UTC) + expires_in}
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def _decode(token: str, token_type: str) -> dict | None:
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None
    if payload.get("type") != token_type:
        return None
    return payload


def create_access_token(subject: str | int) -> str:
    return _encode(
        {"sub": str(subject), "type": "access"},
        timedelta(minutes=settings.access_token_expire_minutes),
    )


def create_refresh_token(subject: str | int) -> str:
    return _encode(
        {"sub": str(subject), "type": "refresh", "jti": str(uuid4())},
        timedelta(days=settings.refresh_token_expire_days),
    )


def create_api_token(subject: str | int, api_key: str) -> str:
    """Long-lived token the voice platform sends as its bearer header."""
    return _encode(
        {"sub": str(subject), "type": "api", "key": api_key},
        timedelta(days=settings.api_token_expire_days),
    )


def create_oauth_state(subject: str | int) -> str:
    return _encode(
        {"sub": str(subject), "type": "oauth_state", "nonce": secrets.token_urlsafe(8)},
        timedelta(minutes=OAUTH_STATE_EXPIRE_MINUTES),
    )


def decode_access_token(token: str) -> str | None:
    payload = _decode(token, "access")
    if not payload:
        return None
    sub = payload.get("sub")
    return str(sub) if sub else None


def decode_api_token(token: str) -> tuple[str | None, str | None]:
    """Returns (tenant_id_str, api_key) or (None, None)."""
    payload = _decode(token, "api")
    if not payload:
        return None, None
    return payload.get("sub"), payload.get("key")


def decode_refresh_token(token: str) -> tuple[str | None, str | None]:
    """Returns (tenant_id_str, jti) or (None, None)."""
    payload = _decode(token, "refresh")
    if not payload:
        return None, None
    return payload.get("sub"), payload.get("jti")


def decode_oauth_state(state: str) -> str | None:
    payload = _decode(state, "oauth_state")
    if not payload:
        return None
    return payload.get("sub")
