"""Live components session: subscription, selection and user intents."""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from typing import Callable, Optional

from botparts.errors import AuthNotReadyError, BotPartsError, NotFoundError, StoreUnavailableError
from botparts.identity import IdentityProvider
from botparts.ledger import (
    ComponentDraft,
    add_component,
    remove_component,
    total_cost,
    update_component,
)
from botparts.models import Build, BuildSnapshot
from botparts.repository import BuildRepository, BuildSubscription
from botparts.selection import SelectionState


logger = logging.getLogger(__name__)

SnapshotPredicate = Callable[[BuildSnapshot], bool]


class ComponentsSession:
    """One user's view of their builds.

    ``start()`` waits for sign-in, subscribes and consumes emissions in a
    single task, so snapshots are applied one at a time and in order. Intents
    run one at a time, each reading the selected build from the store before
    overwriting its component list; the resulting change arrives back through
    the subscription.
    """

    def __init__(self, repository: BuildRepository, identity: IdentityProvider):
        self.repository = repository
        self.identity = identity
        self.selection = SelectionState()
        self.user_id: Optional[str] = None
        self.error: Optional[BaseException] = None
        self._done = False
        self._subscription: Optional[BuildSubscription] = None
        self._pump: Optional[asyncio.Task[None]] = None
        self._changed = asyncio.Condition()
        self._writes = asyncio.Lock()

    # -- lifecycle ------------------------------------------------------------

    async def start(self) -> None:
        if self._pump is not None:
            return
        identity = await self.identity.wait_ready()
        self.user_id = identity.require_user_id()
        self._subscription = self.repository.subscribe(self.user_id)
        self._pump = asyncio.create_task(self._consume(self._subscription))

    async def close(self) -> None:
        """Stop listening. Writes already in flight are left to finish."""

        if self._subscription is not None:
            self._subscription.cancel()
        if self._pump is not None:
            await asyncio.gather(self._pump, return_exceptions=True)
            self._pump = None

    async def __aenter__(self) -> "ComponentsSession":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def _consume(self, subscription: BuildSubscription) -> None:
        try:
            async for snapshot in subscription:
                async with self._changed:
                    self.selection.apply(snapshot)
                    self._changed.notify_all()
        except BotPartsError as exc:
            logger.warning("Build subscription for %s failed: %s", self.user_id, exc)
            await self._record_error(exc)
        except Exception as exc:
            logger.exception("Build subscription for %s crashed", self.user_id)
            await self._record_error(exc)
        finally:
            async with self._changed:
                self._done = True
                self._changed.notify_all()

    async def _record_error(self, exc: BaseException) -> None:
        async with self._changed:
            self.error = exc
            self._changed.notify_all()

    # -- derived state ---------------------------------------------------------

    @property
    def snapshot(self) -> Optional[BuildSnapshot]:
        return self.selection.snapshot

    @property
    def active_build(self) -> Optional[Build]:
        return self.selection.active_build

    @property
    def total_cost(self) -> Decimal:
        build = self.active_build
        return total_cost(build.components) if build is not None else Decimal("0")

    async def wait_for_snapshot(self, predicate: Optional[SnapshotPredicate] = None) -> BuildSnapshot:
        """Wait until the latest snapshot satisfies ``predicate``.

        The default predicate waits for a snapshot with a selected build.
        Raises the subscription's failure if it ends with one.
        """

        def satisfied() -> bool:
            snapshot = self.snapshot
            if snapshot is None:
                return False
            if predicate is None:
                return self.selection.active_build_id is not None
            return predicate(snapshot)

        async with self._changed:
            await self._changed.wait_for(lambda: self.error is not None or self._done or satisfied())
            if self.error is not None:
                raise self.error
            if not satisfied():
                raise StoreUnavailableError("Build subscription closed")
            return self.snapshot  # type: ignore[return-value]

    # -- intents ---------------------------------------------------------------

    def _require_user(self) -> str:
        if self.user_id is None:
            raise AuthNotReadyError()
        return self.user_id

    async def _current_build(self) -> Build:
        user_id = self._require_user()
        build_id = self.selection.active_build_id
        if build_id is None:
            raise NotFoundError("No build is selected")
        return await self.repository.get_build(user_id, build_id)

    def select_build(self, build_id: str) -> Build:
        return self.selection.select(build_id)

    async def create_event(self, name: str) -> Build:
        return await self.repository.create_build(self._require_user(), name)

    async def add_component(self, draft: ComponentDraft) -> Build:
        async with self._writes:
            build = await self._current_build()
            components = add_component(build.components, draft)
            await self.repository.replace_components(self.user_id, build.id, components)
        return build.model_copy(update={"components": components})

    async def update_component(self, draft: ComponentDraft) -> Build:
        async with self._writes:
            build = await self._current_build()
            components = update_component(build.components, draft)
            await self.repository.replace_components(self.user_id, build.id, components)
        return build.model_copy(update={"components": components})

    async def remove_component(self, component_id: str) -> bool:
        """Delete one entry; returns False, without writing, if it was already gone."""

        async with self._writes:
            build = await self._current_build()
            components = remove_component(build.components, component_id)
            if len(components) == len(build.components):
                logger.info("Component %s not in build %s; nothing to delete", component_id, build.id)
                return False
            await self.repository.replace_components(self.user_id, build.id, components)
        return True
