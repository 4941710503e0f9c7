"""Document store contract and the watch fan-out shared by backends."""

from __future__ import annotations

import asyncio
import copy
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Union
from uuid import uuid4

from botparts.errors import NotFoundError, StoreUnavailableError


logger = logging.getLogger(__name__)


@dataclass
class Document:
    id: str
    fields: Dict[str, Any] = field(default_factory=dict)


def split_document_path(document_path: str) -> tuple[str, str]:
    """Split ``a/b/c/doc`` into (``a/b/c``, ``doc``)."""

    collection_path, _, document_id = document_path.rstrip("/").rpartition("/")
    if not collection_path or not document_id:
        raise ValueError(f"Not a document path: {document_path!r}")
    return collection_path, document_id


_CLOSED = object()
_Item = Union[List[Document], BaseException, object]


class DocumentWatch:
    """Async iterator over full-collection snapshots.

    The first item is the collection as it was when the watch opened; every
    later item follows a write to the collection. ``cancel()`` detaches from
    the store and ends iteration. A store failure is raised from
    ``__anext__`` and ends the watch.
    """

    def __init__(self, store: "DocumentStore", collection_path: str):
        self._store = store
        self.collection_path = collection_path
        self._queue: asyncio.Queue[_Item] = asyncio.Queue()
        self._opened = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _push(self, item: _Item) -> None:
        if not self._closed:
            self._queue.put_nowait(item)

    def __aiter__(self) -> "DocumentWatch":
        return self

    async def __anext__(self) -> List[Document]:
        if not self._opened:
            self._opened = True
            await self._store._attach(self)
        if self._closed and self._queue.empty():
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            self.cancel()
            raise item
        return item  # type: ignore[return-value]

    def _fail(self, exc: BaseException) -> None:
        if self._closed:
            return
        self._store._detach(self)
        self._closed = True
        self._queue.put_nowait(exc)

    def cancel(self) -> None:
        if self._closed:
            return
        self._store._detach(self)
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    async def aclose(self) -> None:
        self.cancel()

    async def __aenter__(self) -> "DocumentWatch":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.cancel()


class DocumentStore(ABC):
    """Schemaless documents grouped under slash-separated collection paths.

    Subclasses implement the four ``_``-prefixed primitives; this class
    serializes writes and pushes a fresh snapshot to every watch on the
    written collection, in write order.
    """

    def __init__(self) -> None:
        self._write_lock = asyncio.Lock()
        self._watches: Dict[str, Set[DocumentWatch]] = {}
        self._closed = False

    # -- backend primitives -------------------------------------------------

    @abstractmethod
    async def _insert(self, collection_path: str, document_id: str, fields: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    async def _merge(self, collection_path: str, document_id: str, fields: Dict[str, Any]) -> bool:
        """Overwrite top-level ``fields``; return False when the document is missing."""

    @abstractmethod
    async def _select(self, collection_path: str) -> List[Document]:
        ...

    @abstractmethod
    async def _fetch(self, collection_path: str, document_id: str) -> Optional[Document]:
        ...

    async def _shutdown(self) -> None:
        return None

    # -- public API -----------------------------------------------------------

    def _ensure_open(self) -> None:
        if self._closed:
            raise StoreUnavailableError("Document store is closed")

    async def create(self, collection_path: str, fields: Dict[str, Any], *, document_id: Optional[str] = None) -> str:
        """Insert a document and return its store-assigned id."""

        self._ensure_open()
        new_id = document_id or uuid4().hex
        async with self._write_lock:
            await self._insert(collection_path, new_id, copy.deepcopy(fields))
            await self._notify(collection_path)
        return new_id

    async def overwrite(self, document_path: str, fields: Dict[str, Any]) -> None:
        """Replace the named top-level fields of one document.

        Raises NotFoundError, writing nothing, when the document does not exist.
        """

        self._ensure_open()
        collection_path, document_id = split_document_path(document_path)
        async with self._write_lock:
            found = await self._merge(collection_path, document_id, copy.deepcopy(fields))
            if found:
                await self._notify(collection_path)
        if not found:
            raise NotFoundError(f"Document {document_path!r} not found")

    async def list_documents(self, collection_path: str) -> List[Document]:
        self._ensure_open()
        return await self._select(collection_path)

    async def get_document(self, document_path: str) -> Optional[Document]:
        self._ensure_open()
        collection_path, document_id = split_document_path(document_path)
        return await self._fetch(collection_path, document_id)

    def watch(self, collection_path: str) -> DocumentWatch:
        self._ensure_open()
        return DocumentWatch(self, collection_path)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for watches in list(self._watches.values()):
            for watch in list(watches):
                watch.cancel()
        self._watches.clear()
        await self._shutdown()

    async def __aenter__(self) -> "DocumentStore":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # -- watch bookkeeping ------------------------------------------------------

    async def _attach(self, watch: DocumentWatch) -> None:
        async with self._write_lock:
            if watch.closed:
                return
            if self._closed:
                watch._fail(StoreUnavailableError("Document store is closed"))
                return
            self._watches.setdefault(watch.collection_path, set()).add(watch)
            try:
                snapshot = await self._select(watch.collection_path)
            except StoreUnavailableError as exc:
                watch._fail(exc)
                return
            watch._push(snapshot)

    def _detach(self, watch: DocumentWatch) -> None:
        watches = self._watches.get(watch.collection_path)
        if watches is None:
            return
        watches.discard(watch)
        if not watches:
            del self._watches[watch.collection_path]

    async def _notify(self, collection_path: str) -> None:
        watches = self._watches.get(collection_path)
        if not watches:
            return
        try:
            snapshot = await self._select(collection_path)
        except StoreUnavailableError as exc:
            logger.warning("Dropping %s watch(es) on %s: %s", len(watches), collection_path, exc)
            for watch in list(watches):
                watch._fail(exc)
            return
        logger.debug("Pushing %s document(s) to %s watch(es) on %s", len(snapshot), len(watches), collection_path)
        for watch in list(watches):
            watch._push(copy.deepcopy(snapshot))
