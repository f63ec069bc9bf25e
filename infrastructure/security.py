from datetime import datetime, timedelta, timezone
from typing import List, Optional

from jose import JWTError, jwt

from config import Settings
from domain.auth import Actor


def create_access_token(settings: Settings, data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token"""
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)

    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def create_actor_token(settings: Settings, actor_ref: str, scopes: Optional[List[str]] = None) -> str:
    """Token identifying actor_ref, as issued by the identity collaborator"""
    return create_access_token(settings, {"sub": actor_ref, "scopes": scopes or []})


def decode_actor(settings: Settings, token: str) -> Optional[Actor]:
    """Actor carried by token, None if the token is invalid or has no subject"""
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None

    actor_ref = payload.get("sub")
    if not actor_ref:
        return None
    scopes = payload.get("scopes") or []
    return Actor(actor_ref=actor_ref, privileged=settings.operator_scope in scopes)
