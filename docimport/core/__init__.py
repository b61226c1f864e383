"""Core package: provides models, database helpers, settings, and shared utilities."""

from .db import get_session_factory  # noqa: F401
from .models import ChunkState, JobState, TransactionDraft, TriggerRequest  # noqa: F401
from .settings import Settings, get_settings  # noqa: F401
from .utils import get_logger  # noqa: F401
