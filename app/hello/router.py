"""
Routes for the hello API: the unversioned alias at `/` and the versioned `/v1` group.
"""
from typing import Any, Dict

from fastapi import Depends, FastAPI, Request

from app.auth.dependencies import PUBLIC, get_current_user
from app.core.database import DatabaseService, get_database
from app.hello import service
from app.hello.schemas import HelloResponse, IdentityResponse

API_PREFIX = "/v1"
TAGS = ["Hello"]


def hello(request: Request, db: DatabaseService = Depends(get_database)) -> HelloResponse:
    """
    Hello World with system info.

    - **env**: deployment environment
    - **db**: `connected`, `error` or `not configured`
    """
    return service.get_hello(request.app.state.settings, db)


def who_am_i(user: Dict[str, Any] = Depends(get_current_user)) -> IdentityResponse:
    """Returns the claims of the authenticated caller. Requires a bearer token."""
    return IdentityResponse(user=user)


def register_routes(app: FastAPI, prefix: str = API_PREFIX) -> None:
    """
    Adds the hello routes to the app under their full paths.
    Route templates then carry the prefix, which keeps metric labels and
    rate-limit lookups in terms of the public URL.
    """
    app.add_api_route("/", hello, methods=["GET"], response_model=HelloResponse, tags=TAGS, openapi_extra=PUBLIC)
    app.add_api_route(prefix, hello, methods=["GET"], response_model=HelloResponse, tags=TAGS, openapi_extra=PUBLIC)
    app.add_api_route(f"{prefix}/me", who_am_i, methods=["GET"], response_model=IdentityResponse, tags=TAGS)
