"""Tests for the step tracker used to report stage progress."""

from __future__ import annotations

from rich.console import Console

from create_ttpg_package.tracker import StepTracker


def _render_text(tracker: StepTracker) -> str:
    console = Console(width=120, record=True, color_system=None)
    console.print(tracker.render())
    return console.export_text()


def test_status_transitions():
    tracker = StepTracker("Build")
    tracker.add("copy", "Copy template")
    assert tracker.status_of("copy") == "pending"

    tracker.start("copy")
    assert tracker.status_of("copy") == "running"
    tracker.warn("copy", "partial")
    assert tracker.status_of("copy") == "warning"
    tracker.complete("copy")
    assert tracker.status_of("copy") == "done"
    # detail survives an update without one
    assert tracker.steps["copy"].detail == "partial"


def test_duplicate_add_is_ignored():
    tracker = StepTracker("Build")
    tracker.add("copy", "Copy template")
    tracker.add("copy", "Something else")
    assert len(tracker.steps) == 1
    assert tracker.steps["copy"].label == "Copy template"


def test_unknown_key_is_appended():
    tracker = StepTracker("Build")
    tracker.skip("link", "no TTPG path")
    assert tracker.status_of("link") == "skipped"
    assert tracker.status_of("missing") is None


def test_refresh_callback():
    calls = []
    tracker = StepTracker("Build")
    tracker.attach_refresh(lambda: calls.append(1))
    tracker.add("copy", "Copy template")
    tracker.error("copy", "boom")
    assert len(calls) == 2


def test_render_escapes_detail():
    tracker = StepTracker("Build")
    tracker.add("copy", "Copy template")
    tracker.error("copy", "[Errno 2] No such file: '/tmp/[x]'")
    text = _render_text(tracker)
    assert "Copy template" in text
    assert "[Errno 2] No such file: '/tmp/[x]'" in text
