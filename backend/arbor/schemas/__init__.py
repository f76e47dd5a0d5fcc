from arbor.schemas.project import ProjectCreate, ProjectUpdate, ProjectRead
from arbor.schemas.task import TaskCreate, TaskUpdate, TaskRead, HierarchyAudit
from arbor.schemas.pagination import Page

__all__ = [
    "ProjectCreate",
    "ProjectUpdate",
    "ProjectRead",
    "TaskCreate",
    "TaskUpdate",
    "TaskRead",
    "HierarchyAudit",
    "Page",
]
