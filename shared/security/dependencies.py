from fastapi import Depends, HTTPException, status, Request
from fastapi.security import OAuth2PasswordBearer
from .jwt_handler import ADMIN_ROLE, TokenClaims, decode_access_token

# Defines the expected header format (Bearer <token>)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="auth/login", auto_error=False)


def _claims_or_401(token: str | None) -> TokenClaims:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    claims = decode_access_token(token) if token else None
    if claims is None:
        raise credentials_exception
    return claims


async def get_current_user(request: Request, token: str = Depends(oauth2_scheme)) -> int:
    """Dependency to validate JWT and return the user ID (sub)."""
    claims = _claims_or_401(token)

    # Store in request state for downstream use (like rate limiting)
    request.state.user_id = claims.user_id
    return claims.user_id


async def get_current_admin(request: Request, token: str = Depends(oauth2_scheme)) -> int:
    """Same as get_current_user, but the token must carry the admin role."""
    claims = _claims_or_401(token)
    if not claims.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )

    request.state.user_id = claims.user_id
    return claims.user_id

