"""Active-build selection derived from each build snapshot."""

from __future__ import annotations

import enum
import logging
from typing import Optional

from botparts.errors import NotFoundError
from botparts.models import Build, BuildSnapshot


logger = logging.getLogger(__name__)


class SelectionStatus(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    SELECTED = "selected"


def resolve_active_build(current_id: Optional[str], snapshot: BuildSnapshot) -> Optional[str]:
    """Pick the build to show for ``snapshot``.

    Keeps ``current_id`` while it is present, otherwise falls back to the
    default build, then to the smallest id. Returns None for an empty set.
    """

    ids = snapshot.ids()
    if current_id is not None and current_id in ids:
        return current_id
    defaults = sorted(build.id for build in snapshot.builds if build.is_default)
    if defaults:
        return defaults[0]
    if ids:
        return min(ids)
    return None


class SelectionState:
    def __init__(self) -> None:
        self.active_build_id: Optional[str] = None
        self._snapshot: Optional[BuildSnapshot] = None

    @property
    def status(self) -> SelectionStatus:
        if self.active_build_id is None:
            return SelectionStatus.UNINITIALIZED
        return SelectionStatus.SELECTED

    @property
    def snapshot(self) -> Optional[BuildSnapshot]:
        return self._snapshot

    def apply(self, snapshot: BuildSnapshot) -> Optional[str]:
        """Re-derive the selection from a new snapshot and return it."""

        previous = self.active_build_id
        self._snapshot = snapshot
        self.active_build_id = resolve_active_build(previous, snapshot)
        if previous is not None and self.active_build_id != previous:
            logger.info("Build %s disappeared; selection moved to %s", previous, self.active_build_id)
        return self.active_build_id

    def select(self, build_id: str) -> Build:
        """Explicit user choice; kept across later snapshots while it exists."""

        build = self._snapshot.get(build_id) if self._snapshot is not None else None
        if build is None:
            raise NotFoundError(f"Build {build_id!r} not found")
        self.active_build_id = build.id
        return build

    @property
    def active_build(self) -> Optional[Build]:
        if self._snapshot is None:
            return None
        return self._snapshot.get(self.active_build_id)
