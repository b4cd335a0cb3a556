"""Recurrence rule and instance generation endpoints for a task."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import get_db
from app.core.dependencies import CurrentUserId
from app.core.exceptions import NotFoundError
from app.schemas.common import MessageResponse
from app.schemas.recurrence import (
    RecurrenceRuleCreate,
    RecurrenceRuleUpdate,
    RecurrenceRuleWithDetails,
)
from app.schemas.task_instance import InstanceGenerationResult, TaskInstanceWithDetails
from app.services.recurrence import RecurrenceService
from app.services.task import TaskService
from app.services.task_instance import (
    DEFAULT_DAYS_AHEAD,
    DEFAULT_MAX_INSTANCES,
    TaskInstanceService,
)

router = APIRouter()


# ==================== Recurrence Rule Endpoints ====================

@router.post("/{task_id}/recurrence", response_model=RecurrenceRuleWithDetails)
def create_recurrence_rule(
    task_id: int,
    request: RecurrenceRuleCreate,
    user_id: CurrentUserId,
    db: Annotated[Session, Depends(get_db)],
):
    """
    Attach a recurrence rule to a task and mark the task recurring.
    Only the task owner can do this.
    """
    TaskService(db).get_owned_task(task_id, user_id)
    service = RecurrenceService(db)
    return service.create_rule(task_id, request)


@router.get("/{task_id}/recurrence", response_model=RecurrenceRuleWithDetails)
def get_recurrence_rule(
    task_id: int,
    user_id: CurrentUserId,
    db: Annotated[Session, Depends(get_db)],
):
    """Get the recurrence rule of a task."""
    TaskService(db).get_accessible_task(task_id, user_id)
    service = RecurrenceService(db)
    rule = service.get_rule_by_task(task_id)
    if not rule:
        raise NotFoundError("Recurrence rule", str(task_id))
    return service.enrich_rule(rule)


@router.patch("/{task_id}/recurrence", response_model=RecurrenceRuleWithDetails)
def update_recurrence_rule(
    task_id: int,
    request: RecurrenceRuleUpdate,
    user_id: CurrentUserId,
    db: Annotated[Session, Depends(get_db)],
):
    """
    Partially update a task's recurrence rule.
    Existing instances are not re-dated; generate again to fill new dates.
    """
    TaskService(db).get_owned_task(task_id, user_id)
    service = RecurrenceService(db)
    rule = service.get_rule_by_task(task_id)
    if not rule:
        raise NotFoundError("Recurrence rule", str(task_id))
    return service.update_rule(rule.id, request)


@router.delete("/{task_id}/recurrence", response_model=MessageResponse)
def delete_recurrence_rule(
    task_id: int,
    user_id: CurrentUserId,
    db: Annotated[Session, Depends(get_db)],
):
    """Remove a task's recurrence rule. Generated instances are kept."""
    TaskService(db).get_owned_task(task_id, user_id)
    service = RecurrenceService(db)
    rule = service.get_rule_by_task(task_id)
    if not rule:
        raise NotFoundError("Recurrence rule", str(task_id))
    service.delete_rule(rule.id, task_id)
    return MessageResponse(message="Recurrence rule deleted successfully")


# ==================== Instance Endpoints ====================

@router.post("/{task_id}/instances/generate", response_model=InstanceGenerationResult)
def generate_instances(
    task_id: int,
    user_id: CurrentUserId,
    db: Annotated[Session, Depends(get_db)],
    max_instances: int = Query(DEFAULT_MAX_INSTANCES, ge=1, le=settings.MAX_INSTANCES_LIMIT),
    days_ahead: int = Query(DEFAULT_DAYS_AHEAD, ge=1, le=settings.MAX_DAYS_AHEAD),
):
    """
    Materialize upcoming instances of a recurring task.
    Only dates without an instance are created, so repeating the call is safe.
    """
    TaskService(db).get_editable_task(task_id, user_id)
    service = TaskInstanceService(db)
    instances = service.generate_instances(task_id, max_instances, days_ahead)
    return InstanceGenerationResult(
        generated=len(instances),
        instances=[service.enrich_instance(i) for i in instances],
    )


@router.get("/{task_id}/instances", response_model=list[TaskInstanceWithDetails])
def list_instances(
    task_id: int,
    user_id: CurrentUserId,
    db: Annotated[Session, Depends(get_db)],
):
    """List all instances of a task in scheduled order."""
    TaskService(db).get_accessible_task(task_id, user_id)
    service = TaskInstanceService(db)
    return [service.enrich_instance(i) for i in service.get_instances(task_id)]
