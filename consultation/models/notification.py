"""Notification model definitions."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime


@dataclass(eq=False)
class Notification:
    """A message stored for one recipient."""

    recipient: str
    message: str
    created_at: datetime
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    is_read: bool = False
