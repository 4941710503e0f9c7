"""Build repository: maps Build entities to store documents.

Documents live under ``artifacts/{app_id}/users/{user_id}/builds`` with the
shape::

    {"name": str, "isDefault": bool, "createdAt": timestamp,
     "components": [{"id": str, "name": str, "quantity": int, "price": str}]}

Every component mutation is a full overwrite of ``components``. Prices are
written as decimal strings; numeric prices in older documents are still read.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional, Sequence

from botparts.errors import (
    AuthNotReadyError,
    CorruptDocumentError,
    NotFoundError,
    StoreUnavailableError,
    ValidationError,
)
from botparts.models import Build, BuildSnapshot, Component, sort_builds
from botparts.store import Document, DocumentStore, DocumentWatch


logger = logging.getLogger(__name__)

DEFAULT_APP_ID = "default-app-id"
DEFAULT_BUILD_NAME = "Current Build"


# -- serialization boundary -----------------------------------------------------


def component_to_document(component: Component) -> Dict[str, Any]:
    return {
        "id": component.id,
        "name": component.name,
        "quantity": component.quantity,
        "price": str(component.price) if component.price is not None else None,
    }


def build_to_document(build: Build) -> Dict[str, Any]:
    return {
        "name": build.name,
        "isDefault": build.is_default,
        "createdAt": build.created_at,
        "components": [component_to_document(component) for component in build.components],
    }


def _read_quantity(raw: Any) -> Optional[int]:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float) and raw.is_integer():
        return int(raw)
    if isinstance(raw, str):
        try:
            return int(raw.strip())
        except ValueError:
            return None
    return None


def _read_price(raw: Any) -> Optional[Decimal]:
    if isinstance(raw, bool) or not isinstance(raw, (int, float, str)):
        return None
    try:
        value = Decimal(str(raw).strip())
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


def _read_timestamp(raw: Any) -> Optional[datetime]:
    if isinstance(raw, datetime):
        value = raw
    elif isinstance(raw, str):
        try:
            value = datetime.fromisoformat(raw)
        except ValueError:
            return None
    else:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def component_from_document(document_id: str, raw: Any) -> Component:
    if not isinstance(raw, Mapping):
        raise CorruptDocumentError(document_id, "component entry is not an object")
    component_id = raw.get("id")
    name = raw.get("name")
    if not isinstance(component_id, str) or not component_id:
        raise CorruptDocumentError(document_id, "component without an id")
    if not isinstance(name, str) or not name.strip():
        raise CorruptDocumentError(document_id, f"component {component_id!r} has no name")
    return Component(
        id=component_id,
        name=name,
        quantity=_read_quantity(raw.get("quantity")),
        price=_read_price(raw.get("price")),
    )


def build_from_document(document: Document) -> Build:
    """Validate a stored document and convert it to a Build.

    Raises CorruptDocumentError when a required field is missing or has the
    wrong type. Unreadable quantity or price values load as None.
    """

    fields = document.fields
    name = fields.get("name")
    if not isinstance(name, str) or not name.strip():
        raise CorruptDocumentError(document.id, "missing name")
    is_default = fields.get("isDefault", False)
    if not isinstance(is_default, bool):
        raise CorruptDocumentError(document.id, "isDefault is not a boolean")
    created_at = _read_timestamp(fields.get("createdAt"))
    if created_at is None:
        raise CorruptDocumentError(document.id, "missing or unreadable createdAt")
    raw_components = fields.get("components")
    if not isinstance(raw_components, list):
        raise CorruptDocumentError(document.id, "components is not a list")

    components = [component_from_document(document.id, raw) for raw in raw_components]
    ids = [component.id for component in components]
    if len(set(ids)) != len(ids):
        raise CorruptDocumentError(document.id, "duplicate component ids")
    return Build(
        id=document.id,
        name=name,
        is_default=is_default,
        created_at=created_at,
        components=components,
    )


def snapshot_from_documents(documents: Sequence[Document]) -> BuildSnapshot:
    builds: List[Build] = []
    rejected: List[str] = []
    for document in documents:
        try:
            builds.append(build_from_document(document))
        except CorruptDocumentError as exc:
            logger.warning("Skipping build document: %s", exc)
            rejected.append(document.id)
    return BuildSnapshot(builds=sort_builds(builds), rejected=rejected)


# -- repository -----------------------------------------------------------------


class BuildSubscription:
    """Live stream of BuildSnapshot for one user.

    Iterating yields the full build set after every change. If the first
    emission is empty the repository bootstraps the default build before
    yielding it, so the next emission carries that build.
    """

    def __init__(self, repository: "BuildRepository", user_id: str, watch: DocumentWatch):
        self._repository = repository
        self.user_id = user_id
        self._watch = watch
        self._first = True

    @property
    def closed(self) -> bool:
        return self._watch.closed

    def __aiter__(self) -> "BuildSubscription":
        return self

    async def __anext__(self) -> BuildSnapshot:
        documents = await self._watch.__anext__()
        snapshot = snapshot_from_documents(documents)
        logger.debug("Build snapshot for %s: %s build(s)", self.user_id, len(snapshot.builds))
        if self._first:
            self._first = False
            if snapshot.is_empty() and not snapshot.rejected:
                try:
                    await self._repository.ensure_default_build(self.user_id)
                except StoreUnavailableError:
                    self.cancel()
                    raise
        return snapshot

    def cancel(self) -> None:
        self._watch.cancel()

    async def aclose(self) -> None:
        self.cancel()

    async def __aenter__(self) -> "BuildSubscription":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.cancel()


class BuildRepository:
    def __init__(
        self,
        store: DocumentStore,
        *,
        app_id: str = DEFAULT_APP_ID,
        default_build_name: str = DEFAULT_BUILD_NAME,
    ):
        self.store = store
        self.app_id = app_id
        self.default_build_name = default_build_name
        self._bootstrap_locks: Dict[str, asyncio.Lock] = {}

    def collection_path(self, user_id: Optional[str]) -> str:
        if not user_id:
            raise AuthNotReadyError()
        if "/" in user_id:
            raise ValidationError("User id cannot contain '/'", fields=["user_id"])
        return f"artifacts/{self.app_id}/users/{user_id}/builds"

    def document_path(self, user_id: Optional[str], build_id: str) -> str:
        if not build_id or "/" in build_id:
            raise NotFoundError(f"Build {build_id!r} not found")
        return f"{self.collection_path(user_id)}/{build_id}"

    def subscribe(self, user_id: Optional[str]) -> BuildSubscription:
        collection = self.collection_path(user_id)
        logger.info("Subscribing to builds for %s", user_id)
        return BuildSubscription(self, user_id, self.store.watch(collection))  # type: ignore[arg-type]

    async def list_builds(self, user_id: Optional[str]) -> BuildSnapshot:
        documents = await self.store.list_documents(self.collection_path(user_id))
        return snapshot_from_documents(documents)

    async def get_build(self, user_id: Optional[str], build_id: str) -> Build:
        document = await self.store.get_document(self.document_path(user_id, build_id))
        if document is None:
            raise NotFoundError(f"Build {build_id!r} not found")
        return build_from_document(document)

    async def _insert_build(self, user_id: str, name: str, *, is_default: bool) -> Build:
        created_at = datetime.now(timezone.utc)
        fields = {
            "name": name,
            "isDefault": is_default,
            "createdAt": created_at,
            "components": [],
        }
        build_id = await self.store.create(self.collection_path(user_id), fields)
        return Build(id=build_id, name=name, is_default=is_default, created_at=created_at, components=[])

    async def ensure_default_build(self, user_id: Optional[str]) -> Optional[Build]:
        """Create the default build if the user has no builds yet.

        Check and create run under a per-user lock, so one process never
        creates two defaults. Returns None when builds already exist.
        """

        collection = self.collection_path(user_id)
        lock = self._bootstrap_locks.setdefault(collection, asyncio.Lock())
        async with lock:
            existing = await self.store.list_documents(collection)
            if existing:
                return None
            build = await self._insert_build(user_id, self.default_build_name, is_default=True)  # type: ignore[arg-type]
        logger.info("Created default build %s for %s", build.id, user_id)
        return build

    async def create_build(self, user_id: Optional[str], name: str) -> Build:
        """Create an event build with no components."""

        self.collection_path(user_id)
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Event name cannot be empty.", fields=["name"])
        build = await self._insert_build(user_id, name.strip(), is_default=False)  # type: ignore[arg-type]
        logger.info("Created build %s (%r) for %s", build.id, build.name, user_id)
        return build

    async def replace_components(
        self,
        user_id: Optional[str],
        build_id: str,
        components: Sequence[Component],
    ) -> None:
        """Overwrite the build's component list in one write."""

        ids = [component.id for component in components]
        if len(set(ids)) != len(ids):
            raise ValidationError("Component ids must be unique within a build", fields=["components"])
        payload = {"components": [component_to_document(component) for component in components]}
        await self.store.overwrite(self.document_path(user_id, build_id), payload)
        logger.info("Saved %s component(s) to build %s", len(components), build_id)
