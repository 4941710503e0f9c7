from datetime import datetime, timezone

import pytest

from botparts.errors import NotFoundError
from botparts.models import Build, BuildSnapshot, sort_builds
from botparts.selection import SelectionState, SelectionStatus, resolve_active_build


CREATED = datetime(2025, 1, 1, tzinfo=timezone.utc)


def _snapshot(*builds: Build) -> BuildSnapshot:
    return BuildSnapshot(builds=sort_builds(list(builds)))


def _build(build_id: str, name: str = "Event", *, is_default: bool = False) -> Build:
    return Build(id=build_id, name=name, is_default=is_default, created_at=CREATED)


def test_starts_uninitialized_and_stays_so_on_empty_set():
    state = SelectionState()
    assert state.status is SelectionStatus.UNINITIALIZED
    assert state.apply(BuildSnapshot()) is None
    assert state.status is SelectionStatus.UNINITIALIZED
    assert state.active_build is None


def test_first_snapshot_selects_default_build():
    state = SelectionState()
    state.apply(_snapshot(_build("e1"), _build("d1", "Current Build", is_default=True)))
    assert state.active_build_id == "d1"
    assert state.status is SelectionStatus.SELECTED


def test_current_selection_survives_new_snapshots():
    state = SelectionState()
    state.apply(_snapshot(_build("d1", is_default=True), _build("e1")))
    state.select("e1")
    state.apply(_snapshot(_build("d1", is_default=True), _build("e1"), _build("e2")))
    assert state.active_build_id == "e1"


def test_vanished_selection_falls_back_to_default():
    state = SelectionState()
    state.apply(_snapshot(_build("d1", is_default=True), _build("x")))
    state.select("x")
    state.apply(_snapshot(_build("d1", is_default=True), _build("e1")))
    assert state.active_build_id == "d1"


def test_without_default_smallest_id_wins():
    snapshot = _snapshot(_build("m"), _build("c"), _build("q"))
    assert resolve_active_build(None, snapshot) == "c"
    assert resolve_active_build("gone", snapshot) == "c"


def test_duplicate_defaults_resolve_to_smallest_id():
    snapshot = _snapshot(
        _build("d2", "Current Build", is_default=True),
        _build("d1", "Current Build", is_default=True),
    )
    assert resolve_active_build(None, snapshot) == "d1"


def test_select_unknown_build_raises():
    state = SelectionState()
    with pytest.raises(NotFoundError):
        state.select("d1")
    state.apply(_snapshot(_build("d1", is_default=True)))
    with pytest.raises(NotFoundError):
        state.select("nope")
    assert state.active_build_id == "d1"
