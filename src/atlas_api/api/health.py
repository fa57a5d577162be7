"""Health probes."""

import logging

from sqlalchemy import text
from sqlalchemy.orm import Session

from fastapi import APIRouter, Depends, HTTPException, Request, status

from atlas_api.db.session import get_db
from atlas_api.schemas.common import ErrorResponse, SuccessResponse
from atlas_api.schemas.responses import HealthStatusData
from atlas_api.utils.response import success

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


@router.get(
    "/live",
    summary="Liveness probe",
    description="The process is up; external dependencies are not checked.",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[HealthStatusData],
    responses={500: {"model": ErrorResponse}},
)
def live(request: Request):
    return success(request, {"status": "ok"})


@router.get(
    "/ready",
    summary="Readiness probe",
    description="Checks the database and the startup configuration report.",
    status_code=status.HTTP_200_OK,
    response_model=SuccessResponse[HealthStatusData],
    responses={500: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
def ready(request: Request, db: Session = Depends(get_db)):
    """Run a minimal query, then answer not-ready while startup problems remain.

    Problems are configuration details, so they go to the log only.
    """
    db.execute(text("select 1"))
    report = request.app.state.startup
    if not report.ok:
        logger.warning("readiness failed: %s", "; ".join(report.problems))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={
                "code": "NOT_READY",
                "message": "Serviço indisponível: configuração incompleta.",
            },
        )
    # Warnings were logged at startup; callers only see the degraded status.
    return success(request, {"status": "degraded" if report.warnings else "ready", "problems": []})
