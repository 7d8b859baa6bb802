from functools import wraps
from typing import Callable


def read_through(key_builder: Callable[..., str], ttl: int | None = None):
    """
    Cache-aside decorator for async service methods. key_builder receives the
    method's args/kwargs (without self); the instance must expose ``cache``.
    The wrapped method returns ``(value, from_cache)``.
    Example:
      @read_through(lambda owner_id, params: task_list_key(owner_id, params))
      async def list_tasks(self, owner_id, params): ...
    """

    def decorator(fn: Callable):
        @wraps(fn)
        async def wrapper(self, *args, **kwargs):
            key = key_builder(*args, **kwargs)

            cached = await self.cache.get(key)
            if cached is not None:
                return cached, True

            value = await fn(self, *args, **kwargs)
            await self.cache.set(key, value, ttl)
            return value, False

        return wrapper

    return decorator


def invalidates(pattern_builder: Callable[..., str]):
    """
    Run the write first, then delete every key matching the pattern.
    Invalidation happens even if the method returns nothing.
    """

    def decorator(fn: Callable):
        @wraps(fn)
        async def wrapper(self, *args, **kwargs):
            result = await fn(self, *args, **kwargs)
            await self.cache.delete_matching(pattern_builder(*args, **kwargs))
            return result

        return wrapper

    return decorator
