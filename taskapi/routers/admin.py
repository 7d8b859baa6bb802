from typing import Any

from fastapi import APIRouter, Body, Depends, status

from taskapi.dependencies import AuthServiceDep, TaskServiceDep, require_roles
from taskapi.schemas import AssignTaskRequest, UserRead, dump
from taskapi.validation import validate

router = APIRouter(
    prefix="/admin", tags=["admin"], dependencies=[Depends(require_roles("admin"))]
)


@router.post("/assign-task", status_code=status.HTTP_201_CREATED)
async def assign_task(service: TaskServiceDep, payload: Any = Body(default=None)):
    """Create a task owned by another user"""
    task_data = validate(AssignTaskRequest, payload).unwrap()
    return {"success": True, "data": await service.assign_task(task_data)}


@router.get("/users")
async def list_users(auth: AuthServiceDep):
    users = [dump(UserRead.model_validate(u)) for u in await auth.list_users()]
    return {"success": True, "count": len(users), "data": users}
