from .health import health
from .events import story_updated, notification_queued

__all__ = [
    "health",
    "story_updated",
    "notification_queued",
]
