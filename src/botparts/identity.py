"""User identity boundary: an opaque id plus a readiness signal."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional
from uuid import uuid4

from botparts.errors import AuthNotReadyError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    user_id: Optional[str] = None
    ready: bool = False

    def require_user_id(self) -> str:
        if not self.ready or not self.user_id:
            raise AuthNotReadyError()
        return self.user_id


class IdentityProvider:
    """Completes sign-in once and announces it.

    ``sign_in(user_id)`` adopts a known id (CLI flag, request header);
    ``sign_in()`` with no id starts an anonymous session with a fresh id.
    ``sign_out()`` leaves the provider ready with no user, which callers
    requiring an id see as AuthNotReadyError.
    """

    def __init__(self) -> None:
        self._identity = Identity()
        self._ready = asyncio.Event()

    @property
    def current(self) -> Identity:
        return self._identity

    async def sign_in(self, user_id: Optional[str] = None) -> Identity:
        if user_id is not None and not user_id.strip():
            raise AuthNotReadyError("User id cannot be blank")
        resolved = user_id.strip() if user_id else uuid4().hex
        self._identity = Identity(user_id=resolved, ready=True)
        logger.info("Signed in as %s%s", resolved, "" if user_id else " (anonymous)")
        self._ready.set()
        return self._identity

    def sign_out(self) -> None:
        self._identity = Identity(user_id=None, ready=True)
        self._ready.set()

    async def wait_ready(self) -> Identity:
        await self._ready.wait()
        return self._identity
