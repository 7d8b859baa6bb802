import json
from typing import Mapping

TASK_LIST_PREFIX = "tasks"


def task_list_key(owner_id: int, params: Mapping[str, str]) -> str:
    """
    Cache key for one page of an owner's task list.

    Embeds the full query string (reserved params included), serialized
    with sorted keys so equivalent queries share an entry.
    """
    query = json.dumps(dict(params), sort_keys=True, separators=(",", ":"))
    return f"{TASK_LIST_PREFIX}:{owner_id}:{query}"


def owner_task_lists_pattern(owner_id: int) -> str:
    """Matches every cached list variant of one owner."""
    return f"{TASK_LIST_PREFIX}:{owner_id}:*"
