from typing import Any, Dict, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from starlette.routing import BaseRoute

from app.core.exceptions import AuthorizationError
from app.core.security import decode_access_token

# Route marker: register with `openapi_extra=PUBLIC` to skip bearer authentication
PUBLIC: Dict[str, Any] = {"x-public": True}

bearer_scheme = HTTPBearer(auto_error=False)


def is_public_route(route: Optional[BaseRoute]) -> bool:
    extra = getattr(route, "openapi_extra", None) or {}
    return bool(extra.get("x-public"))


def authorize_request(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> None:
    """
    Application-wide guard: public routes pass through, every other route
    requires `Authorization: Bearer <HS256 JWT>`.
    On success the decoded claims are attached to `request.state.user`.
    """
    if is_public_route(request.scope.get("route")):
        return

    if credentials is None:
        raise AuthorizationError(AuthorizationError.UNAUTHORIZED)

    # A missing secret is a server misconfiguration; clients must not be able to tell it apart
    secret = request.app.state.settings.JWT_SECRET
    if not secret:
        raise AuthorizationError(AuthorizationError.UNAUTHORIZED)

    try:
        payload = decode_access_token(credentials.credentials, secret)
    except JWTError:
        raise AuthorizationError(AuthorizationError.INVALID_TOKEN)

    request.state.user = payload


def get_current_user(request: Request) -> Dict[str, Any]:
    """Claims of the authenticated caller, as attached by authorize_request."""
    user = getattr(request.state, "user", None)
    if user is None:
        raise AuthorizationError(AuthorizationError.UNAUTHORIZED)
    return user
