from __future__ import annotations

from datetime import datetime
from typing import TypedDict


# PUBLIC_INTERFACE
class CountdownEntity(TypedDict):
    """
    A lightweight domain model representing one countdown event as held by
    the store.

    Fields:
    - id: Opaque, URL-safe identifier generated by the store; never changes
    - title: Display name (blank input becomes "Untitled")
    - description: Free text, may be empty
    - target: Timezone-aware instant the countdown runs to (UTC)
    - emoji: Display glyph (blank input becomes the hourglass)
    - color: Display color token (blank input becomes the default hex value)
    """

    id: str
    title: str
    description: str
    target: datetime
    emoji: str
    color: str
