"""Tests for the filesystem-triggered rebuild loop."""

from __future__ import annotations

from pathlib import Path
from typing import List

import pytest
from watchdog.events import (
    DirModifiedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from docpilot.errors import BuildError
from docpilot.watcher import WatchScheduler, WatchState
from tests._fixtures.fake_observer import FakeObserver


def _scheduler(root: Path, cycle, observer: FakeObserver, **kwargs) -> WatchScheduler:
    return WatchScheduler(
        cycle,
        root,
        ignore_dirs=[root / "output"],
        observer_factory=lambda: observer,
        poll_interval=0.01,
        **kwargs,
    )


def _touch(scheduler: WatchScheduler, path: Path) -> None:
    scheduler.handler.dispatch(FileModifiedEvent(str(path)))


def test_initial_cycle_runs_before_any_change(tmp_path: Path) -> None:
    observer = FakeObserver()
    calls: List[int] = []

    def cycle() -> None:
        calls.append(1)
        scheduler.stop()

    scheduler = _scheduler(tmp_path, cycle, observer)
    scheduler.run()

    assert calls == [1]
    assert observer.scheduled[0][1:] == (str(tmp_path), True)
    assert observer.started and observer.stopped and observer.joined
    assert scheduler.state is WatchState.STOPPED


def test_failed_cycle_keeps_watching(tmp_path: Path) -> None:
    observer = FakeObserver()
    calls: List[int] = []

    def cycle() -> None:
        calls.append(1)
        if len(calls) == 1:
            _touch(scheduler, tmp_path / "01-intro.md")
            raise BuildError("Pandoc failed: boom", stderr="boom")
        scheduler.stop()

    scheduler = _scheduler(tmp_path, cycle, observer)
    scheduler.run()

    assert scheduler.cycles == 2
    assert scheduler.failures == 1


def test_changes_during_a_build_coalesce_into_one_cycle(tmp_path: Path) -> None:
    observer = FakeObserver()
    calls: List[int] = []

    def cycle() -> None:
        calls.append(1)
        if len(calls) == 1:
            for index in range(5):
                _touch(scheduler, tmp_path / f"0{index}-part.md")
            assert scheduler.pending_events() == 5
            return
        assert scheduler.pending_events() == 0
        scheduler.stop()

    scheduler = _scheduler(tmp_path, cycle, observer)
    scheduler.run()

    assert scheduler.cycles == 2


def test_state_is_building_while_cycle_runs(tmp_path: Path) -> None:
    observer = FakeObserver()
    seen: List[WatchState] = []

    def cycle() -> None:
        seen.append(scheduler.state)
        scheduler.stop()

    scheduler = _scheduler(tmp_path, cycle, observer)
    assert scheduler.state is WatchState.IDLE
    scheduler.run()

    assert seen == [WatchState.BUILDING]


def test_only_fragment_and_yaml_changes_are_queued(tmp_path: Path) -> None:
    scheduler = _scheduler(tmp_path, lambda: None, FakeObserver())
    handler = scheduler.handler

    handler.dispatch(FileModifiedEvent(str(tmp_path / "notes.txt")))
    handler.dispatch(FileModifiedEvent(str(tmp_path / "output" / "document.md")))
    handler.dispatch(FileModifiedEvent(str(tmp_path / ".git" / "HEAD.md")))
    handler.dispatch(DirModifiedEvent(str(tmp_path)))
    handler.dispatch(FileDeletedEvent(str(tmp_path / "03-gone.md")))
    assert scheduler.pending_events() == 0

    handler.dispatch(FileCreatedEvent(str(tmp_path / "02-new.md")))
    handler.dispatch(FileModifiedEvent(str(tmp_path / "docpilot.yml")))
    handler.dispatch(FileMovedEvent(str(tmp_path / "draft.tmp"), str(tmp_path / "04-saved.md")))
    assert scheduler.pending_events() == 3


def test_full_queue_drops_excess_events(tmp_path: Path) -> None:
    scheduler = _scheduler(tmp_path, lambda: None, FakeObserver(), max_pending=1)

    _touch(scheduler, tmp_path / "01-a.md")
    _touch(scheduler, tmp_path / "02-b.md")

    assert scheduler.pending_events() == 1
    assert scheduler.handler.dropped == 1


def test_dead_observer_ends_the_loop(tmp_path: Path) -> None:
    observer = FakeObserver(alive=False)
    scheduler = _scheduler(tmp_path, lambda: None, observer)

    scheduler.run()

    assert scheduler.cycles == 1
    assert scheduler.state is WatchState.STOPPED
    assert observer.stopped


def test_keyboard_interrupt_stops_cleanly(tmp_path: Path) -> None:
    observer = FakeObserver()

    def cycle() -> None:
        raise KeyboardInterrupt

    scheduler = _scheduler(tmp_path, cycle, observer)
    scheduler.run()

    assert scheduler.state is WatchState.STOPPED
    assert observer.stopped and observer.joined


def test_unexpected_errors_propagate_after_cleanup(tmp_path: Path) -> None:
    observer = FakeObserver()

    def cycle() -> None:
        raise ValueError("bug")

    scheduler = _scheduler(tmp_path, cycle, observer)

    with pytest.raises(ValueError):
        scheduler.run()

    assert observer.stopped
