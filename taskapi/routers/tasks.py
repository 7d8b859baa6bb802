from typing import Any

from fastapi import APIRouter, Body, Request, status

from taskapi.dependencies import CurrentUser, TaskServiceDep
from taskapi.schemas import TaskCreate, TaskUpdate
from taskapi.validation import validate

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.get("")
async def get_tasks(request: Request, user: CurrentUser, service: TaskServiceDep):
    """
    List the caller's tasks.

    Any non-reserved query param filters (``status=completed``,
    ``dueDate[lt]=2030-01-01``); ``sort``, ``page``, ``limit`` and ``fields``
    shape the page.
    """
    tasks, from_cache = await service.list_tasks(user.id, dict(request.query_params))
    return {"success": True, "fromCache": from_cache, "count": len(tasks), "data": tasks}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_task(user: CurrentUser, service: TaskServiceDep, payload: Any = Body(default=None)):
    """Create a new task"""
    task_data = validate(TaskCreate, payload).unwrap()
    return {"success": True, "data": await service.create_task(user.id, task_data)}


@router.get("/{task_id}")
async def get_task(task_id: int, user: CurrentUser, service: TaskServiceDep):
    """Get a specific task by ID"""
    return {"success": True, "data": await service.get_task(user.id, task_id)}


@router.put("/{task_id}")
async def update_task(
    task_id: int, user: CurrentUser, service: TaskServiceDep, payload: Any = Body(default=None)
):
    task_data = validate(TaskUpdate, payload).unwrap()
    return {"success": True, "data": await service.update_task(user.id, task_id, task_data)}


@router.delete("/{task_id}")
async def delete_task(task_id: int, user: CurrentUser, service: TaskServiceDep):
    """Delete a task"""
    await service.delete_task(user.id, task_id)
    return {"success": True, "data": None, "message": "Task deleted successfully"}
