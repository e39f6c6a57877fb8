"""Event identifier generation."""

from __future__ import annotations

import uuid
from typing import Callable


IdGenerator = Callable[[], str]


def generate_id() -> str:
    """Random version-4 UUID, e.g. ``'0b7e9c1a-5f0e-4c4e-9a51-7c1f2d3e4b5a'``."""
    return str(uuid.uuid4())
