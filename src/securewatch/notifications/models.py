"""Notification and toast data model.

Notifications come from three places, recorded in ``provenance``:
- server: issued by the notification service (native id, stringified)
- fallback: synthesized from the dashboard alert feed (id ``alert-<source id>``)
- local: raised inside the client via ``add_notification``
"""

from __future__ import annotations

import time
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Optional

FALLBACK_ID_PREFIX = "alert-"


class NotificationType(str, Enum):
    """Severity shown to the user."""

    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class NotificationPriority(str, Enum):
    """Priority levels for notifications."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class NotificationCategory(str, Enum):
    """Subject area of a notification."""

    SECURITY = "security"
    SYSTEM = "system"
    USER = "user"
    POLICY = "policy"


class Provenance(str, Enum):
    """Where a notification came from."""

    SERVER = "server"  # Primary notification service
    FALLBACK = "fallback"  # Dashboard alert feed
    LOCAL = "local"  # Raised by the client itself


class ToastKind(str, Enum):
    """Visual style of a toast."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


def coerce_enum(enum_cls, value: Any, default):
    """Parse ``value`` into ``enum_cls``, falling back to ``default``."""
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return default


def fallback_id(source_id: Any) -> str:
    """Build the stable identifier of a fallback-derived notification."""
    return f"{FALLBACK_ID_PREFIX}{source_id}"


class TimeBasedIdFactory:
    """Monotonic, time-based identifiers for locally created records.

    Identifiers are the current time in milliseconds; two requests within
    the same millisecond get the next free value so ids never collide.
    """

    def __init__(self, clock=time.time):
        self._clock = clock
        self._last = 0

    def __call__(self) -> str:
        candidate = int(self._clock() * 1000)
        if candidate <= self._last:
            candidate = self._last + 1
        self._last = candidate
        return str(candidate)


@dataclass(frozen=True)
class Notification:
    """A user-facing notification.

    Attributes:
        id: Unique, stable identifier within the canonical list
        type: Severity
        title: Short headline
        message: Body text
        timestamp: ISO-8601 creation time
        read: Whether the user has read it
        priority: Priority level
        category: Subject area
        provenance: Source of the record
        action_url: Optional link to open on click
        employee_id: Related employee, if any
        violation_id: Related policy violation, if any
    """

    id: str
    type: NotificationType = NotificationType.INFO
    title: str = ""
    message: str = ""
    timestamp: str = ""
    read: bool = False
    priority: NotificationPriority = NotificationPriority.MEDIUM
    category: NotificationCategory = NotificationCategory.SYSTEM
    provenance: Provenance = Provenance.SERVER
    action_url: Optional[str] = None
    employee_id: Optional[str] = None
    violation_id: Optional[str] = None

    @property
    def is_fallback(self) -> bool:
        return self.provenance is Provenance.FALLBACK

    def with_read(self, read: bool) -> "Notification":
        """Return a copy with the read flag set."""
        if self.read == read:
            return self
        return replace(self, read=read)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "type": self.type.value,
            "title": self.title,
            "message": self.message,
            "timestamp": self.timestamp,
            "read": self.read,
            "priority": self.priority.value,
            "category": self.category.value,
            "provenance": self.provenance.value,
            "action_url": self.action_url,
            "employee_id": self.employee_id,
            "violation_id": self.violation_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Notification":
        """Create from dictionary."""
        return cls(
            id=str(data["id"]),
            type=coerce_enum(NotificationType, data.get("type"), NotificationType.INFO),
            title=data.get("title", ""),
            message=data.get("message", ""),
            timestamp=data.get("timestamp", ""),
            read=bool(data.get("read", False)),
            priority=coerce_enum(
                NotificationPriority, data.get("priority"), NotificationPriority.MEDIUM
            ),
            category=coerce_enum(
                NotificationCategory, data.get("category"), NotificationCategory.SYSTEM
            ),
            provenance=coerce_enum(Provenance, data.get("provenance"), Provenance.SERVER),
            action_url=data.get("action_url"),
            employee_id=data.get("employee_id"),
            violation_id=data.get("violation_id"),
        )


@dataclass
class Toast:
    """A short-lived message shown on top of the UI.

    Attributes:
        message: Body text
        kind: Visual style
        title: Optional headline
        duration: Milliseconds before automatic removal
        id: Assigned by the scheduler
    """

    message: str
    kind: ToastKind = ToastKind.INFO
    title: Optional[str] = None
    duration: Optional[int] = None
    id: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "message": self.message,
            "kind": self.kind.value,
            "title": self.title,
            "duration": self.duration,
        }

