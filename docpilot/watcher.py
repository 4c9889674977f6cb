"""Filesystem-triggered rebuild loop.

A watchdog observer thread feeds qualifying change events into a bounded
queue; :class:`WatchScheduler` consumes that queue on the calling thread and
runs at most one build cycle at a time. Events that arrive while a cycle is
running stay queued and are collapsed into a single follow-up cycle.
"""

from __future__ import annotations

import os
import queue
import threading
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .errors import DocPilotError
from .logging import get_logger

TRIGGER_SUFFIXES = frozenset({".md", ".yaml", ".yml"})
_REBUILD_EVENTS = frozenset({"created", "modified", "moved"})
_IGNORED_DIR_NAMES = frozenset({".git", ".hg", ".svn", "__pycache__", "node_modules"})

# Placed on the queue to wake the consumer for shutdown.
_STOP = None


class WatchState(Enum):
    IDLE = "idle"
    WATCHING = "watching"
    BUILDING = "building"
    STOPPED = "stopped"


class ChangeQueueHandler(FileSystemEventHandler):
    """Forwards rebuild-worthy events from the observer thread into a queue."""

    def __init__(
        self,
        events: "queue.Queue[Optional[Path]]",
        accept: Callable[[Path], bool],
    ) -> None:
        super().__init__()
        self._events = events
        self._accept = accept
        self.dropped = 0

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in _REBUILD_EVENTS:
            return
        candidates = [event.src_path]
        dest = getattr(event, "dest_path", "")
        if dest:
            candidates.append(dest)
        for raw in candidates:
            path = Path(os.fsdecode(raw))
            if self._accept(path):
                self._enqueue(path)
                return

    def _enqueue(self, path: Path) -> None:
        try:
            self._events.put_nowait(path)
        except queue.Full:
            # A rebuild is already pending; it will pick this change up.
            self.dropped += 1


class WatchScheduler:
    """Runs ``cycle`` once on start and again after each qualifying change."""

    def __init__(
        self,
        cycle: Callable[[], Any],
        root: Path,
        *,
        ignore_dirs: Sequence[Path] = (),
        observer_factory: Callable[[], Any] | None = None,
        max_pending: int = 256,
        poll_interval: float = 0.5,
    ) -> None:
        self.cycle = cycle
        self.root = root
        self.ignore_dirs = tuple(ignore_dirs)
        self.poll_interval = poll_interval
        self._observer_factory = observer_factory or Observer
        self._events: "queue.Queue[Optional[Path]]" = queue.Queue(maxsize=max_pending)
        self._stop_requested = threading.Event()
        self._state = WatchState.IDLE
        self.handler = ChangeQueueHandler(self._events, self.should_rebuild)
        self.cycles = 0
        self.failures = 0
        self.logger = get_logger("watcher")

    @property
    def state(self) -> WatchState:
        return self._state

    def pending_events(self) -> int:
        return self._events.qsize()

    def should_rebuild(self, path: Path) -> bool:
        if path.suffix.lower() not in TRIGGER_SUFFIXES:
            return False
        if any(part in _IGNORED_DIR_NAMES for part in path.parts):
            return False
        return not any(_is_within(path, directory) for directory in self.ignore_dirs)

    def stop(self) -> None:
        """Ask the loop to finish; an in-flight cycle always completes first."""
        self._stop_requested.set()
        try:
            self._events.put_nowait(_STOP)
        except queue.Full:
            pass  # the consumer re-checks the stop flag on every wake-up

    def run(self) -> None:
        """Watch until interrupted, ``stop()`` is called, or the observer dies."""
        observer = self._observer_factory()
        observer.schedule(self.handler, str(self.root), recursive=True)
        observer.start()
        self.logger.info("Watching %s for changes... Press Ctrl+C to stop", self.root)

        try:
            self._run_cycle("initial build")
            while not self._stop_requested.is_set():
                try:
                    item = self._events.get(timeout=self.poll_interval)
                except queue.Empty:
                    if not observer.is_alive():
                        self.logger.error("File watcher stopped unexpectedly")
                        break
                    continue

                if item is _STOP or self._stop_requested.is_set():
                    break
                coalesced = self._drain()
                if _STOP in coalesced:
                    break
                if coalesced:
                    self.logger.debug("Coalesced %d further change(s)", len(coalesced))
                self._run_cycle(f"file changed: {item}")
        except KeyboardInterrupt:
            self.logger.info("Interrupted; stopping watcher")
        finally:
            self._state = WatchState.STOPPED
            observer.stop()
            observer.join(timeout=5)
            self.logger.info("Watcher stopped after %d build cycle(s)", self.cycles)

    def _drain(self) -> list[Optional[Path]]:
        drained: list[Optional[Path]] = []
        while True:
            try:
                drained.append(self._events.get_nowait())
            except queue.Empty:
                return drained

    def _run_cycle(self, reason: str) -> bool:
        self._state = WatchState.BUILDING
        self.logger.info("Rebuilding (%s)", reason)
        self.cycles += 1
        try:
            self.cycle()
        except (DocPilotError, OSError) as exc:
            self.failures += 1
            self.logger.error("Build failed: %s", exc)
            return False
        else:
            self.logger.info("Rebuild complete")
            return True
        finally:
            self._state = WatchState.WATCHING


def _is_within(path: Path, directory: Path) -> bool:
    try:
        path.resolve().relative_to(directory.resolve())
    except ValueError:
        return False
    return True


__all__ = [
    "ChangeQueueHandler",
    "TRIGGER_SUFFIXES",
    "WatchScheduler",
    "WatchState",
]
