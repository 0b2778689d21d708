"""
Bearer token primitives.
Tokens are HS256-signed JWTs; HS256 is the only algorithm accepted on verification.
"""
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import jwt

ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60


def create_access_token(
    data: Dict[str, Any],
    secret: str,
    expires_delta: Optional[timedelta] = None,
    algorithm: str = ALGORITHM,
) -> str:
    """
    Generates a signed JWT with an `exp` claim.
    A negative `expires_delta` yields an already-expired token.
    """
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, secret, algorithm=algorithm)


def decode_access_token(token: str, secret: str) -> Dict[str, Any]:
    """Verifies signature and expiry. Raises jose.JWTError on any verification failure."""
    return jwt.decode(token, secret, algorithms=[ALGORITHM])
