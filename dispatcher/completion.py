"""
Story completion detection.

A story document starts with an empty ``text`` field and is "completed" the
first time the author writes something into it. Later edits must not notify
the partner again.
"""
from enum import Enum
from typing import Optional


class StoryChange(str, Enum):
    COMPLETED = "completed"
    EDITED = "edited"
    NOOP = "noop"


def _normalize(text: Optional[str]) -> str:
    return (text or "").strip()


def classify_story_change(old_text: Optional[str], new_text: Optional[str]) -> StoryChange:
    """Classify a before/after pair of story texts (whitespace-trimmed)."""
    old = _normalize(old_text)
    new = _normalize(new_text)

    if old == "" and len(new) > 0:
        return StoryChange.COMPLETED
    if old != "" and new != old:
        return StoryChange.EDITED
    return StoryChange.NOOP
