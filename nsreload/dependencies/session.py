"""
nsreload Reload Session

A ReloadSession is the single owner of a Tracker value for a development
session. Trackers are immutable, so readers may hold any value they got
from the session; writers are serialized by the session's lock so no
add/remove is computed against a stale base and then lost.
"""

from __future__ import annotations
from dataclasses import replace
from typing import Callable, Hashable, Iterable, List, Optional, Set
import logging
import threading

from nsreload.bootstrap.config import HistoryConfig, get_config
from nsreload.errors import CyclicDependencyError, DrainError

from .graph import Depmap, Name
from .tracker import Tracker, affected
from .transition_log import TransitionEntry, TransitionLog, TransitionType

logger = logging.getLogger(__name__)

Handler = Callable[[Hashable], None]


class ReloadSession:
    """
    Owns one Tracker and applies transitions to it one at a time.

    Every transition is recorded in a TransitionLog (unless history is
    disabled) and passed to registered listeners.
    """

    def __init__(
        self,
        tracker: Optional[Tracker] = None,
        log: Optional[TransitionLog] = None,
        history: Optional[HistoryConfig] = None,
    ):
        self._tracker = tracker if tracker is not None else Tracker()
        self._lock = threading.RLock()

        history = history or get_config().history
        if log is not None:
            self._log: Optional[TransitionLog] = log
        elif history.enabled:
            self._log = TransitionLog(max_entries=history.max_entries)
        else:
            self._log = None

        self._listeners: List[Callable[[TransitionEntry], None]] = []

        # Names queued again while a drain is running; None outside a drain.
        self._requeued: Optional[Set[Name]] = None

    @property
    def tracker(self) -> Tracker:
        return self._tracker

    @property
    def log(self) -> Optional[TransitionLog]:
        return self._log

    @property
    def unload(self):
        return self._tracker.unload

    @property
    def load(self):
        return self._tracker.load

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def add(self, depmap: Depmap) -> Tracker:
        """
        Apply Tracker.add to the held tracker.

        Raises:
            CyclicDependencyError: the held tracker is left as it was
        """
        names = list(depmap)

        with self._lock:
            try:
                updated = self._tracker.add(depmap)
            except CyclicDependencyError as e:
                logger.warning(f"Rejected dependency update for {len(names)} names: {e}")
                self._record(
                    TransitionType.REJECTED,
                    names=names,
                    error=str(e),
                    metadata={"cycle": [str(n) for n in e.cycle]},
                )
                raise

            changed = affected(updated.graph, names)
            self._tracker = updated
            self._requeue(changed)
            self._record(TransitionType.ADD, names=names, changed=changed)
            return updated

    def remove(self, names: Iterable[Name]) -> Tracker:
        """Apply Tracker.remove to the held tracker."""
        names = list(names)

        with self._lock:
            current = self._tracker
            known = [name for name in names if name in current.graph]
            updated = current.remove(names)
            changed = affected(current.graph, known)

            self._tracker = updated
            self._requeue(changed)
            self._record(
                TransitionType.REMOVE,
                names=names,
                changed=changed,
                metadata={"ignored": [str(n) for n in names if n not in current.graph]},
            )
            return updated

    def acknowledge(self) -> Tracker:
        """Clear the pending sequences, keeping the graph."""
        with self._lock:
            self._tracker = self._tracker.acknowledge()
            self._record(TransitionType.ACKNOWLEDGE)
            return self._tracker

    def update(self, transition: Callable[[Tracker], Tracker]) -> Tracker:
        """
        Replace the held tracker with ``transition(tracker)`` under the lock.

        A custom transition gives no account of what it queued, so during a
        drain every name it leaves pending is treated as queued again.
        """
        with self._lock:
            current = self._tracker
            updated = transition(current)
            if updated == current:
                return current

            pending = set(updated.unload) | set(updated.load)
            self._tracker = updated
            self._requeue(pending)
            self._record(
                TransitionType.UPDATE,
                changed=pending - set(current.unload) - set(current.load),
            )
            return updated

    def drain(self, unloader: Handler, loader: Handler) -> Tracker:
        """
        Process every pending unload, then every pending load, in order.

        On success the drained names are cleared. Names a handler queued
        again through this session while the drain ran stay pending for the
        next drain. If a handler raises, a DrainError is raised from it and
        the pending sequences are left untouched so the same lists can be
        drained again. Nothing is retried here.
        """
        with self._lock:
            tracker = self._tracker
            outer, self._requeued = self._requeued, set()

            try:
                for stage, names, handler in (
                    ("unload", tracker.unload, unloader),
                    ("load", tracker.load, loader),
                ):
                    for name in names:
                        try:
                            handler(name)
                        except Exception as e:
                            logger.error(f"Failed to {stage} {name!r}: {e}")
                            self._record(
                                TransitionType.DRAIN_FAILED,
                                names=[name],
                                error=str(e),
                                metadata={"stage": stage},
                            )
                            raise DrainError(name, stage, e) from e
            finally:
                requeued, self._requeued = self._requeued, outer
                if outer is not None:
                    outer |= requeued

            logger.debug(f"Drained {len(tracker.unload)} unloads and {len(tracker.load)} loads")

            if self._tracker == tracker:
                return self.acknowledge()

            # Drop what was just drained, except names queued again meanwhile.
            drained = (set(tracker.unload) | set(tracker.load)) - requeued
            current = self._tracker
            self._tracker = replace(
                current,
                unload=tuple(n for n in current.unload if n not in drained),
                load=tuple(n for n in current.load if n not in drained),
            )
            logger.debug(f"Tracker changed during drain, {len(requeued)} names still pending")
            self._record(
                TransitionType.ACKNOWLEDGE,
                changed=drained,
                metadata={"requeued": sorted(str(n) for n in requeued)},
            )
            return self._tracker

    def _requeue(self, names: Iterable[Name]) -> None:
        if self._requeued is not None:
            self._requeued.update(names)

    # -------------------------------------------------------------------------
    # Listeners
    # -------------------------------------------------------------------------

    def on_transition(self, callback: Callable[[TransitionEntry], None]) -> None:
        """Register a callback for transition entries."""
        self._listeners.append(callback)

    def _record(
        self,
        transition_type: TransitionType,
        names: Iterable[Name] = (),
        changed: Iterable[Name] = (),
        error: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> TransitionEntry:
        entry = TransitionEntry(
            transition_type=transition_type,
            names=[str(n) for n in names],
            changed=sorted(str(n) for n in changed),
            unload_count=len(self._tracker.unload),
            load_count=len(self._tracker.load),
            error=error,
            metadata=metadata or {},
        )

        if self._log is not None:
            self._log.log(entry)

        for callback in self._listeners:
            try:
                callback(entry)
            except Exception as e:
                logger.error(f"Transition callback error: {e}")

        return entry


# =============================================================================
# MODULE-LEVEL INSTANCE
# =============================================================================

_default_session: Optional[ReloadSession] = None
_default_lock = threading.Lock()


def get_default_session() -> ReloadSession:
    """Get or create the process-wide session."""
    global _default_session
    with _default_lock:
        if _default_session is None:
            _default_session = ReloadSession()
        return _default_session


def reset_default_session() -> None:
    """Drop the process-wide session; the next get creates a fresh one."""
    global _default_session
    with _default_lock:
        _default_session = None
