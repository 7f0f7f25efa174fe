"""Tasks CRUD — every row is scoped to the caller's tenant."""

import uuid

from fastapi import APIRouter, HTTPException, status

from erp.api.deps import CurrentIdentity, CurrentTenant, Data, Gate
from erp.models.task import Task, TaskCreate, TaskRead, TaskUpdate
from erp.providers.data import DataProvider
from erp.services.access import AccessGate

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.post("", response_model=TaskRead, status_code=status.HTTP_201_CREATED)
async def create_task(body: TaskCreate, context: CurrentTenant, data: Data) -> TaskRead:
    task = await data.insert("tasks", {
        **body.model_dump(),
        "tenant_id": context.tenant.id,  # type: ignore[union-attr]
        "created_by": context.user.id,  # type: ignore[union-attr]
    })
    return TaskRead.model_validate(task)


@router.get("", response_model=list[TaskRead])
async def list_tasks(context: CurrentTenant, data: Data) -> list[TaskRead]:
    tasks = await data.select(
        "tasks",
        order_by="-created_at",
        tenant_id=context.tenant.id,  # type: ignore[union-attr]
    )
    return [TaskRead.model_validate(t) for t in tasks]


@router.get("/{task_id}", response_model=TaskRead)
async def get_task(
    task_id: uuid.UUID, identity: CurrentIdentity, gate: Gate, data: Data
) -> TaskRead:
    task = await _get_authorized(task_id, identity, gate, data)
    return TaskRead.model_validate(task)


@router.patch("/{task_id}", response_model=TaskRead)
async def update_task(
    task_id: uuid.UUID,
    body: TaskUpdate,
    identity: CurrentIdentity,
    gate: Gate,
    data: Data,
) -> TaskRead:
    task = await _get_authorized(task_id, identity, gate, data)

    update_data = body.model_dump(exclude_unset=True)
    if update_data:
        [task] = await data.update("tasks", update_data, id=task.id, tenant_id=task.tenant_id)
    return TaskRead.model_validate(task)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: uuid.UUID, identity: CurrentIdentity, gate: Gate, data: Data
) -> None:
    task = await _get_authorized(task_id, identity, gate, data)
    await data.delete("tasks", id=task.id, tenant_id=task.tenant_id)


# ── Internal helper ───────────────────────────────────────────

async def _get_authorized(
    task_id: uuid.UUID, identity, gate: AccessGate, data: DataProvider
) -> Task:
    """Load a task and pass it through the tenant boundary before returning it."""
    await gate.require_tenant(identity)
    task = await data.select_one("tasks", id=task_id)
    if task is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    await gate.require_tenant_access(identity, task.tenant_id)
    return task
