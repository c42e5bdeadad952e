"""
Access tokens for storefront accounts.

A token carries the account id as `sub` and the account role. Admin-only
routes trust the role claim, so a role change takes effect on the next login.
"""
import os
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from pydantic import BaseModel

SECRET_KEY = os.getenv("JWT_SECRET_KEY")
if not SECRET_KEY:
    raise ValueError("FATAL ERROR: JWT_SECRET_KEY is not set in the environment!")

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "60"))

CUSTOMER_ROLE = "customer"
ADMIN_ROLE = "admin"


class TokenClaims(BaseModel):
    user_id: int
    role: str = CUSTOMER_ROLE

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


def create_access_token(user_id: int, role: str = CUSTOMER_ROLE, expires_delta: Optional[timedelta] = None) -> str:
    """Signs a token for one account, expiring after ACCESS_TOKEN_EXPIRE_MINUTES unless told otherwise."""
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {"sub": str(user_id), "role": role, "exp": expire}
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> Optional[TokenClaims]:
    """Returns the claims of a valid token, or None if it is invalid, expired or has no numeric sub."""
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None

    try:
        user_id = int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        return None
    return TokenClaims(user_id=user_id, role=payload.get("role") or CUSTOMER_ROLE)
