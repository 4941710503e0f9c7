"""Full-set emissions produced by build subscriptions."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field
from pydantic.config import ConfigDict

from .component import Build


class BuildSnapshot(BaseModel):
    """Every build a user owns at one point in time.

    ``builds`` is ordered default-first, then by name; ``rejected`` holds the
    ids of stored documents that could not be read as builds.
    """

    builds: List[Build] = Field(default_factory=list)
    rejected: List[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    def is_empty(self) -> bool:
        return not self.builds

    def get(self, build_id: str | None) -> Optional[Build]:
        if build_id is None:
            return None
        for build in self.builds:
            if build.id == build_id:
                return build
        return None

    def ids(self) -> list[str]:
        return [build.id for build in self.builds]


def sort_builds(builds: List[Build]) -> List[Build]:
    """Default build first, then case-insensitive name, then id."""

    return sorted(builds, key=lambda build: (not build.is_default, build.name.casefold(), build.id))
