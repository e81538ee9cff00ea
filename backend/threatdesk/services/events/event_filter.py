# backend/threatdesk/services/events/event_filter.py
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

from threatdesk.schemas.events import StoredEvent


@dataclass(frozen=True)
class EventFilter:
    """
    Predicate for event queries.

    The SQL store turns each field into a bound WHERE clause; the in-memory
    store evaluates `matches()` directly. Both must agree.
    """
    # exclusive lower bound on occurred_at (naive UTC)
    since: Optional[datetime] = None
    # status must contain at least one of these tokens, case-insensitive
    status_contains: Tuple[str, ...] = ()
    source_ip_prefix: Optional[str] = None
    require_source_ip: bool = False

    def matches(self, event: StoredEvent) -> bool:
        if self.since is not None:
            if event.occurred_at is None or event.occurred_at <= self.since:
                return False

        if self.status_contains:
            status = (event.status or "").lower()
            if not any(tok.lower() in status for tok in self.status_contains):
                return False

        if self.source_ip_prefix is not None:
            if not (event.source_ip or "").startswith(self.source_ip_prefix):
                return False

        if self.require_source_ip and not event.source_ip:
            return False

        return True
