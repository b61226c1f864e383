"""Workers package: dispatcher, worker, progress tracking, chunk store, and the background task queue."""

from .job_runner import ImportJobRunner  # noqa: F401
from .task_queue import TaskQueue  # noqa: F401
