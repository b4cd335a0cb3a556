"""Single task instance endpoints."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.dependencies import CurrentUserId
from app.schemas.common import MessageResponse
from app.schemas.task_instance import TaskInstanceUpdate, TaskInstanceWithDetails
from app.services.task_instance import TaskInstanceService

router = APIRouter()


@router.get("/{instance_id}", response_model=TaskInstanceWithDetails)
def get_instance(
    instance_id: int,
    user_id: CurrentUserId,
    db: Annotated[Session, Depends(get_db)],
):
    """Get a task instance."""
    service = TaskInstanceService(db)
    return service.enrich_instance(service.get_instance(instance_id, user_id))


@router.patch("/{instance_id}", response_model=TaskInstanceWithDetails)
def update_instance(
    instance_id: int,
    request: TaskInstanceUpdate,
    user_id: CurrentUserId,
    db: Annotated[Session, Depends(get_db)],
):
    """
    Override one occurrence.
    Title, description and time overrides flag the instance as modified;
    the rule and sibling instances are left alone.
    """
    service = TaskInstanceService(db)
    instance = service.update_instance(instance_id, user_id, request)
    return service.enrich_instance(instance)


@router.delete("/{instance_id}", response_model=MessageResponse)
def delete_instance(
    instance_id: int,
    user_id: CurrentUserId,
    db: Annotated[Session, Depends(get_db)],
):
    """Delete a single task instance."""
    service = TaskInstanceService(db)
    service.delete_instance(instance_id, user_id)
    return MessageResponse(message="Task instance deleted successfully")
