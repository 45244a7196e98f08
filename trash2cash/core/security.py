# Security-related helpers such as JWT creation and token handling.
import time
import jwt
from trash2cash.core.config import settings
from trash2cash.core.errors import Unauthorized

def create_access_token(sub: str, extra: dict | None = None, exp_seconds: int | None = None) -> str:
    now = int(time.time())
    if exp_seconds is None:
        exp_seconds = settings.ACCESS_TOKEN_TTL_SECONDS
    payload = {
        "iss": settings.JWT_ISSUER,
        "aud": settings.JWT_AUDIENCE,
        "iat": now,
        "nbf": now,
        "exp": now + exp_seconds,
        "sub": sub,
    }

    if extra:
        payload.update(extra)
    return jwt.encode(payload, settings.JWT_SECRET, algorithm="HS256")

def decode_access_token(token: str) -> dict:
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=["HS256"],
            audience=settings.JWT_AUDIENCE,
            issuer=settings.JWT_ISSUER,
        )
    except jwt.ExpiredSignatureError as exc:
        raise Unauthorized("Access token expired. Please scan the QR code again.") from exc
    except jwt.InvalidTokenError as exc:
        raise Unauthorized("Invalid access token") from exc

def bearer_subject(authorization: str | None) -> str:
    """Return the user id carried by an `Authorization: Bearer ...` header."""
    if not authorization:
        raise Unauthorized("Not logged in")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise Unauthorized("Not logged in")
    claims = decode_access_token(token.strip())
    sub = claims.get("sub")
    if not sub:
        raise Unauthorized("Invalid access token")
    return sub
