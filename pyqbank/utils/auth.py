"""
Bearer token verification.

Tokens are issued by the identity provider; this service only verifies them.
The payload carries the principal id in `sub` and a list of `roles`.
"""
from datetime import datetime, timedelta, timezone
from typing import List, Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from pyqbank import config

ADMIN_ROLE = "admin"


class TokenData(BaseModel):
    sub: str
    roles: List[str] = []


bearer = HTTPBearer(auto_error=False)


def create_access_token(user_id: str, roles: List[str], ttl_minutes: Optional[int] = None) -> str:
    now = datetime.now(timezone.utc)
    ttl = ttl_minutes if ttl_minutes is not None else config.ACCESS_TOKEN_TTL_MINUTES
    payload = {
        "sub": user_id,
        "roles": roles,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=ttl)).timestamp()),
    }
    return jwt.encode(payload, config.APP_SECRET, algorithm=config.JWT_ALGORITHM)


def get_current_user(creds: Optional[HTTPAuthorizationCredentials] = Depends(bearer)) -> TokenData:
    if creds is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"}
        )
    try:
        payload = jwt.decode(creds.credentials, config.APP_SECRET, algorithms=[config.JWT_ALGORITHM])
        return TokenData(sub=str(payload["sub"]), roles=payload.get("roles", []))
    except (jwt.PyJWTError, KeyError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"}
        )


def require_admin(user: TokenData = Depends(get_current_user)) -> TokenData:
    if ADMIN_ROLE not in user.roles:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin role required")
    return user
