"""
Operational endpoints: liveness, readiness and Prometheus metrics.
All are public and exempt from rate limiting and request metrics.
"""
from typing import Dict

from fastapi import Depends, FastAPI, Request, Response
from fastapi.responses import JSONResponse

from app.auth.dependencies import PUBLIC
from app.core.database import STATUS_ERROR, DatabaseService, get_database
from app.metrics.registry import METRICS_CONTENT_TYPE

TAGS = ["Health"]


def health_check() -> Dict[str, str]:
    """Liveness probe endpoint for orchestration systems."""
    return {"status": "ok"}


def readiness_check(db: DatabaseService = Depends(get_database)) -> JSONResponse:
    """Readiness probe: 503 while a configured database is unreachable."""
    db_status = db.ping()
    if db_status == STATUS_ERROR:
        return JSONResponse(status_code=503, content={"status": "unavailable", "db": db_status})
    return JSONResponse(status_code=200, content={"status": "ok", "db": db_status})


def metrics_endpoint(request: Request) -> Response:
    return Response(content=request.app.state.metrics.render(), media_type=METRICS_CONTENT_TYPE)


def register_routes(app: FastAPI) -> None:
    app.add_api_route("/health", health_check, methods=["GET"], tags=TAGS, openapi_extra=PUBLIC)
    app.add_api_route("/health/ready", readiness_check, methods=["GET"], tags=TAGS, openapi_extra=PUBLIC)
    app.add_api_route(
        "/metrics", metrics_endpoint, methods=["GET"], tags=TAGS, openapi_extra=PUBLIC, include_in_schema=False
    )
