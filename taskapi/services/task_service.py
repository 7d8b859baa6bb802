from datetime import datetime, timezone
from typing import Mapping

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from taskapi.cache.decorators import invalidates, read_through
from taskapi.cache.keys import owner_task_lists_pattern, task_list_key
from taskapi.cache.layer import CacheLayer
from taskapi.core.config import Settings
from taskapi.core.errors import InternalError, NotFoundError
from taskapi.core.logging import get_logger
from taskapi.models import Task, User
from taskapi.schemas import AssignTaskRequest, TaskCreate, TaskRead, TaskUpdate, dump
from taskapi.services.query import QueryTranslationError, TaskQuery

logger = get_logger(__name__)


class TaskService:
    """
    Task reads and writes for one request.

    Every write invalidates all cached list pages of the affected owner after
    the database commit. Ownership is checked with a single query on
    (id, created_by), so another user's task looks exactly like a missing one.
    """

    def __init__(self, db: AsyncSession, cache: CacheLayer, settings: Settings):
        self.db = db
        self.cache = cache
        self.settings = settings

    async def get_owned_task(self, owner_id: int, task_id: int) -> Task:
        result = await self.db.exec(
            select(Task).where(Task.id == task_id, Task.created_by == owner_id)
        )
        task = result.first()
        if task is None:
            raise NotFoundError("Task not found")
        return task

    @read_through(lambda owner_id, params, *_, **__: task_list_key(owner_id, params))
    async def list_tasks(self, owner_id: int, params: Mapping[str, str]) -> list[dict]:
        try:
            query = TaskQuery.from_params(
                owner_id,
                params,
                default_limit=self.settings.default_page_limit,
                max_limit=self.settings.max_page_limit,
            )
        except QueryTranslationError as e:
            logger.warning("Task query rejected", owner_id=owner_id, error=str(e))
            raise InternalError() from e
        result = await self.db.exec(query.statement())
        return query.project([dump(TaskRead.model_validate(t)) for t in result.all()])

    async def get_task(self, owner_id: int, task_id: int) -> dict:
        return dump(TaskRead.model_validate(await self.get_owned_task(owner_id, task_id)))

    async def _insert(self, task: Task) -> dict:
        self.db.add(task)
        await self.db.commit()
        await self.db.refresh(task)
        logger.info("Task created", task_id=task.id, owner_id=task.created_by)
        return dump(TaskRead.model_validate(task))

    @invalidates(lambda owner_id, *_, **__: owner_task_lists_pattern(owner_id))
    async def create_task(self, owner_id: int, task_data: TaskCreate) -> dict:
        # owner always comes from the acting user, never from the payload
        return await self._insert(Task(**task_data.model_dump(), created_by=owner_id))

    @invalidates(lambda owner_id, *_, **__: owner_task_lists_pattern(owner_id))
    async def update_task(self, owner_id: int, task_id: int, task_data: TaskUpdate) -> dict:
        task = await self.get_owned_task(owner_id, task_id)
        update_data = task_data.model_dump(exclude_unset=True)
        task.sqlmodel_update(update_data)
        task.updated_at = datetime.now(timezone.utc)
        await self.db.commit()
        await self.db.refresh(task)
        logger.info("Task updated", task_id=task.id, fields=sorted(update_data))
        return dump(TaskRead.model_validate(task))

    @invalidates(lambda owner_id, *_, **__: owner_task_lists_pattern(owner_id))
    async def delete_task(self, owner_id: int, task_id: int) -> None:
        task = await self.get_owned_task(owner_id, task_id)
        await self.db.delete(task)
        await self.db.commit()
        logger.info("Task deleted", task_id=task_id, owner_id=owner_id)

    @invalidates(lambda task_data, *_, **__: owner_task_lists_pattern(task_data.user_id))
    async def assign_task(self, task_data: AssignTaskRequest) -> dict:
        if await self.db.get(User, task_data.user_id) is None:
            raise NotFoundError("User not found")
        fields = task_data.model_dump(exclude={"user_id"})
        return await self._insert(Task(**fields, created_by=task_data.user_id))
