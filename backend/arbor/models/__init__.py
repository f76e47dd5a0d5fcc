from arbor.models.tenant import Tenant
from arbor.models.project import Project
from arbor.models.task import Task

__all__ = ["Tenant", "Project", "Task"]
