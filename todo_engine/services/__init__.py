"""Services module for the todo engine.

Services:
- tasks.py: Task CRUD, completion lifecycle and recurrence spawning
- projects.py: Project CRUD, hierarchy and statistics
- query.py: Filter/sort/paginate over task collections
- recurrence.py: Calendar arithmetic for repeating tasks
- tags.py: Tag usage bookkeeping
- validators.py: Stateless field validation
"""

from todo_engine.services.base import EntityManager
from todo_engine.services.projects import ProjectManager
from todo_engine.services.tasks import TaskManager

__all__ = [
    "EntityManager",
    "TaskManager",
    "ProjectManager",
]
