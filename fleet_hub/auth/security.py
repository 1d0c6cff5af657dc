import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from ..config import Settings
from ..db import get_db
from ..models.models import User


http_bearer = HTTPBearer(auto_error=False)


def _create_token(settings: Settings, sub: str, ttl_seconds: int, extra: Optional[dict] = None) -> str:
    now = datetime.now(tz=timezone.utc)
    payload = {
        "sub": sub,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=ttl_seconds)).timestamp()),
        "jti": str(uuid.uuid4()),
    }
    if extra:
        payload.update(extra)
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def create_access_token(settings: Settings, user_id: str, role: Optional[str] = None) -> str:
    return _create_token(settings, user_id, settings.jwt_ttl_seconds, extra={"role": role or "driver"})


def decode_token(settings: Settings, token: str) -> dict:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")


def get_optional_user(
    request: Request,
    creds: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """Resolve the acting user from a bearer token, or None when anonymous.

    A token that is present but invalid is always rejected.
    """
    if creds is None:
        return None
    payload = decode_token(request.app.state.settings, creds.credentials)
    user = db.get(User, str(payload.get("sub")))
    if user is None or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not active")
    return user


def get_actor(request: Request, user: Optional[User] = Depends(get_optional_user)) -> Optional[User]:
    """Acting user for mutating endpoints; anonymous is allowed unless REQUIRE_AUTH is set."""
    if user is None and request.app.state.settings.require_auth:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    return user


def actor_name(user: Optional[User], supplied: Optional[str] = None) -> str:
    if supplied:
        return supplied
    return user.name if user else ""


def actor_id(user: Optional[User], supplied: Optional[str] = None) -> str:
    if supplied:
        return supplied
    return user.id if user else ""
