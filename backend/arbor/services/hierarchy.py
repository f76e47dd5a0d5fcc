"""
Parent-assignment validation for the task hierarchy.

Walks the ancestor chain of the candidate parent one store read at a time.
The walk is a loop over a visited set, so a long or corrupted chain cannot
blow the stack. Nothing here writes.

The check is not atomic with the write that follows it: two concurrent
reparent operations can each pass and still close a loop together. The
``/tasks/integrity`` audit reports such loops.
"""

import enum
import uuid

from arbor.services.store import TaskStore
from arbor.logging_config import get_logger

logger = get_logger(__name__)


class ParentAssignment(str, enum.Enum):
    OK = "ok"
    SELF_PARENT = "self_parent"
    CYCLE = "cycle"
    TOO_DEEP = "too_deep"


async def validate_parent_assignment(
    store: TaskStore,
    tenant_id: uuid.UUID,
    task_id: uuid.UUID,
    candidate_parent_id: uuid.UUID,
    max_depth: int | None = None,
) -> ParentAssignment:
    """
    Decide whether ``task_id`` may take ``candidate_parent_id`` as its parent.

    The caller must have confirmed the candidate exists. A missing node met
    during the walk ends it, same as reaching a root.

    Args:
        store: Task store bound to the request session
        tenant_id: Tenant whose tasks are walked
        task_id: Task being reparented
        candidate_parent_id: Proposed new parent
        max_depth: Maximum number of ancestors the task may end up with.
            None walks the whole chain.

    Returns:
        ParentAssignment.OK, or the reason the assignment is rejected.
    """
    if candidate_parent_id == task_id:
        return ParentAssignment.SELF_PARENT

    visited = {task_id}
    current: uuid.UUID | None = candidate_parent_id
    depth = 0

    while current is not None:
        if current in visited:
            logger.debug(f"Ancestor walk from {candidate_parent_id} reached {current} again")
            return ParentAssignment.CYCLE
        visited.add(current)

        depth += 1
        if max_depth is not None and depth > max_depth:
            return ParentAssignment.TOO_DEEP

        current = await store.get_parent_id(tenant_id, current)

    return ParentAssignment.OK
