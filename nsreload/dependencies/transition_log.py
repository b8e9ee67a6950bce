"""
nsreload Transition Log

Bounded audit trail of tracker transitions: which names were added or
removed, how many names had their order recomputed, and what was left
pending afterwards. Queryable by name, transition type and time.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Set
import json
import logging
import uuid

logger = logging.getLogger(__name__)


# =============================================================================
# TRANSITION TYPES
# =============================================================================

class TransitionType(Enum):
    """Kind of tracker transition."""
    ADD = "add"                      # New dependency information recorded
    REMOVE = "remove"                # Names forgotten
    UPDATE = "update"                # Custom transition through update()
    ACKNOWLEDGE = "acknowledge"      # Pending sequences cleared after a drain
    REJECTED = "rejected"            # add() refused because of a cycle
    DRAIN_FAILED = "drain_failed"    # An unloader or loader raised


# =============================================================================
# TRANSITION ENTRY
# =============================================================================

@dataclass
class TransitionEntry:
    """A single entry in the transition log."""
    entry_id: str = field(default_factory=lambda: str(uuid.uuid4())[:12])
    timestamp: datetime = field(default_factory=datetime.utcnow)

    transition_type: TransitionType = TransitionType.ADD

    # Subject
    names: List[str] = field(default_factory=list)
    changed: List[str] = field(default_factory=list)

    # Pending state after the transition
    unload_count: int = 0
    load_count: int = 0

    error: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def mentions(self, name: str) -> bool:
        return name in self.names or name in self.changed

    def to_dict(self) -> Dict[str, Any]:
        """Serialize entry to dict."""
        return {
            "entry_id": self.entry_id,
            "timestamp": self.timestamp.isoformat(),
            "transition_type": self.transition_type.value,
            "names": self.names,
            "changed": self.changed,
            "unload_count": self.unload_count,
            "load_count": self.load_count,
            "error": self.error,
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TransitionEntry":
        """Load entry from dict."""
        return cls(
            entry_id=data.get("entry_id", str(uuid.uuid4())[:12]),
            timestamp=datetime.fromisoformat(data["timestamp"]) if data.get("timestamp") else datetime.utcnow(),
            transition_type=TransitionType(data.get("transition_type", "add")),
            names=list(data.get("names", [])),
            changed=list(data.get("changed", [])),
            unload_count=data.get("unload_count", 0),
            load_count=data.get("load_count", 0),
            error=data.get("error"),
            metadata=data.get("metadata", {}),
        )


# =============================================================================
# TRANSITION LOG
# =============================================================================

class TransitionLog:
    """In-memory, size-bounded history of tracker transitions."""

    DEFAULT_MAX_ENTRIES = 1000

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES):
        self._entries: List[TransitionEntry] = []
        self._max_entries = max_entries
        self._by_name: Dict[str, List[TransitionEntry]] = {}

    def log(self, entry: TransitionEntry) -> str:
        """
        Add an entry to the log.

        Returns:
            Entry ID
        """
        self._entries.append(entry)
        self._index(entry)

        if len(self._entries) > self._max_entries:
            self._trim_entries()

        return entry.entry_id

    def query(
        self,
        name: Optional[str] = None,
        transition_types: Optional[Set[TransitionType]] = None,
        since: Optional[datetime] = None,
        limit: int = 100,
    ) -> List[TransitionEntry]:
        """
        Query the log.

        Args:
            name: Only entries whose input or changed names include this
            transition_types: Filter by transition type(s)
            since: Only entries at or after this time
            limit: Maximum entries to return

        Returns:
            List of matching entries (newest first)
        """
        if name is not None:
            entries = self._by_name.get(name, [])
        else:
            entries = self._entries

        filtered = []
        for entry in reversed(entries):
            if since and entry.timestamp < since:
                continue
            if transition_types and entry.transition_type not in transition_types:
                continue

            filtered.append(entry)
            if len(filtered) >= limit:
                break

        return filtered

    def get_history(self, name: str, limit: int = 100) -> List[TransitionEntry]:
        """Get entries touching a specific name, newest first."""
        entries = self._by_name.get(name, [])
        return list(reversed(entries[-limit:]))

    def get_recent(self, count: int = 100) -> List[TransitionEntry]:
        """Get most recent entries."""
        return list(reversed(self._entries[-count:]))

    def get_statistics(self) -> Dict[str, Any]:
        counts = {t.value: 0 for t in TransitionType}
        for entry in self._entries:
            counts[entry.transition_type.value] += 1

        return {
            "total_entries": len(self._entries),
            "max_entries": self._max_entries,
            "names_tracked": len(self._by_name),
            "by_type": counts,
        }

    def to_json(self, limit: int = 1000) -> str:
        """Render recent entries as a JSON document, newest first."""
        entries = self.get_recent(limit)
        return json.dumps({
            "exported_at": datetime.utcnow().isoformat(),
            "entry_count": len(entries),
            "entries": [e.to_dict() for e in entries],
        }, indent=2)

    def _index(self, entry: TransitionEntry) -> None:
        for name in set(entry.names) | set(entry.changed):
            self._by_name.setdefault(name, []).append(entry)

    def _trim_entries(self) -> None:
        """Trim to max entries."""
        trim_count = len(self._entries) - self._max_entries
        self._entries = self._entries[trim_count:]

        self._by_name.clear()
        for entry in self._entries:
            self._index(entry)

        logger.debug(f"Trimmed {trim_count} transition log entries")

    def clear(self) -> None:
        """Clear all entries."""
        self._entries.clear()
        self._by_name.clear()

    def __len__(self) -> int:
        return len(self._entries)
