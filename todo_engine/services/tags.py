"""Tag service: usage counting for task tags.

Tags are never created or deleted directly. They appear when a task
first references them and disappear when the last referencing task lets
go of them.
"""

import logging
from collections.abc import Iterable

from todo_engine.db.store import JsonStore
from todo_engine.models.base import local_now
from todo_engine.models.tag import Tag

logger = logging.getLogger(__name__)


def sync_tag_usage(
    store: JsonStore,
    new_tags: Iterable[str],
    old_tags: Iterable[str] = (),
) -> None:
    """Adjust usage counters for a change from ``old_tags`` to ``new_tags``.

    Args:
        store: The document store
        new_tags: Tags the task references after the change
        old_tags: Tags the task referenced before the change
    """
    new_set = list(dict.fromkeys(new_tags))
    old_set = list(dict.fromkeys(old_tags))
    added = [tag for tag in new_set if tag not in old_set]
    removed = [tag for tag in old_set if tag not in new_set]

    with store.lock:
        now = local_now()
        for name in added:
            tag = store.get_tag(name)
            if tag is None:
                store.create_tag(Tag(name=name, usage_count=1, last_used=now, created_at=now))
                logger.debug("Tag created", extra={"tag": name})
            else:
                store.update_tag(name, {"usage_count": tag.usage_count + 1, "last_used": now})

        for name in removed:
            tag = store.get_tag(name)
            if tag is None:
                continue
            if tag.usage_count <= 1:
                store.delete_tag(name)
                logger.debug("Tag released", extra={"tag": name})
            else:
                store.update_tag(name, {"usage_count": tag.usage_count - 1})


def list_tags(store: JsonStore) -> list[Tag]:
    """All tags, most used first, then by name."""
    return sorted(store.get_tags(), key=lambda t: (-t.usage_count, t.name))


def get_tag(store: JsonStore, name: str) -> Tag | None:
    """Get a tag by name."""
    return store.get_tag(name)
