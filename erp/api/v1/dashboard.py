"""Dashboard summary for the caller's tenant."""

from collections import Counter

from fastapi import APIRouter
from pydantic import BaseModel

from erp.api.deps import CurrentTenant, Data
from erp.models.task import TaskRead, TaskStatus
from erp.models.tenant import TenantRead

router = APIRouter(prefix="/dashboard", tags=["dashboard"])

RECENT_TASKS = 5


class DashboardResponse(BaseModel):
    tenant: TenantRead
    task_counts: dict[str, int]
    recent_tasks: list[TaskRead]


@router.get("", response_model=DashboardResponse)
async def get_dashboard(context: CurrentTenant, data: Data) -> DashboardResponse:
    tasks = await data.select(
        "tasks",
        order_by="-created_at",
        tenant_id=context.tenant.id,  # type: ignore[union-attr]
    )
    counts = Counter(str(t.status) for t in tasks)
    return DashboardResponse(
        tenant=TenantRead.model_validate(context.tenant),
        task_counts={s.value: counts.get(s.value, 0) for s in TaskStatus},
        recent_tasks=[TaskRead.model_validate(t) for t in tasks[:RECENT_TASKS]],
    )
