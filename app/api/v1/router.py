"""Main API router aggregating all module routers."""

from fastapi import APIRouter

from app.api.v1.endpoints import instances, recurrence
from app.schemas.common import ErrorResponse

api_router = APIRouter(
    responses={
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)

# Recurrence rules and instance generation, nested under their task
api_router.include_router(
    recurrence.router,
    prefix="/tasks",
    tags=["Recurrence"],
)

# Individual instances (overrides, deletion)
api_router.include_router(
    instances.router,
    prefix="/instances",
    tags=["Task Instances"],
)
