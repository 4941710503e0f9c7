"""Typed entities for builds and their components."""

from .component import Build, Component
from .snapshot import BuildSnapshot, sort_builds

__all__ = ["Build", "BuildSnapshot", "Component", "sort_builds"]
