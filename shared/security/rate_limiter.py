import os
from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request
from .jwt_handler import decode_access_token

# Order placement is limited per account; login per client address
ORDER_RATE_LIMIT = os.getenv("ORDER_RATE_LIMIT", "30/minute")
LOGIN_RATE_LIMIT = os.getenv("LOGIN_RATE_LIMIT", "10/minute")


def user_id_or_ip(request: Request) -> str:
    """
    Key function for SlowAPI.
    A valid bearer token buckets the request under its account, so one
    shopper cannot exhaust another's checkout budget from a shared address.
    Anything else falls back to the client's IP address.
    """
    auth_header = request.headers.get("Authorization", "")
    scheme, _, token = auth_header.partition(" ")

    if scheme.lower() == "bearer" and token:
        claims = decode_access_token(token)
        if claims is not None:
            return f"user:{claims.user_id}"

    return f"ip:{get_remote_address(request)}"


limiter = Limiter(key_func=user_id_or_ip)
