"""
Pod summary model built from a v1.Pod API object.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class PodSummary:
    """What a pod picker needs to show for one pod."""
    name: str
    phase: str
    ready: int
    total: int
    restarts: int
    age: str

    @property
    def ready_label(self) -> str:
        return f"{self.ready}/{self.total}"

    @classmethod
    def from_api(cls, pod: Dict[str, Any], now: Optional[datetime] = None) -> "PodSummary":
        """Build a summary from a pod item of a PodList response."""
        metadata = pod.get("metadata") or {}
        status = pod.get("status") or {}
        container_statuses = status.get("containerStatuses") or []

        created = metadata.get("creationTimestamp")
        age = format_age(_parse_rfc3339(created), now) if created else "unknown"

        return cls(
            name=metadata.get("name", ""),
            phase=status.get("phase") or "Unknown",
            ready=sum(1 for c in container_statuses if c and c.get("ready")),
            total=len(container_statuses),
            restarts=sum((c or {}).get("restartCount") or 0 for c in container_statuses),
            age=age,
        )


def _parse_rfc3339(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_age(created: datetime, now: Optional[datetime] = None) -> str:
    """Render an age as whole days, else hours, else minutes (``3d``, ``5h``, ``12m``)."""
    now = now or datetime.now(timezone.utc)
    seconds = max(0, int((now - created).total_seconds()))

    days, remainder = divmod(seconds, 86400)
    if days > 0:
        return f"{days}d"
    hours, remainder = divmod(remainder, 3600)
    if hours > 0:
        return f"{hours}h"
    return f"{remainder // 60}m"
