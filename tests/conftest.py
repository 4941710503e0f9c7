import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, List

import pytest

from botparts.errors import StoreUnavailableError
from botparts.repository import BuildRepository
from botparts.store import Document, MemoryDocumentStore


class FlakyStore(MemoryDocumentStore):
    """Memory store whose reads or writes can be switched off."""

    def __init__(self) -> None:
        super().__init__()
        self.writes_offline = False
        self.reads_offline = False

    async def _insert(self, collection_path: str, document_id: str, fields: Dict[str, Any]) -> None:
        if self.writes_offline:
            raise StoreUnavailableError("network down")
        await super()._insert(collection_path, document_id, fields)

    async def _merge(self, collection_path: str, document_id: str, fields: Dict[str, Any]) -> bool:
        if self.writes_offline:
            raise StoreUnavailableError("network down")
        return await super()._merge(collection_path, document_id, fields)

    async def _select(self, collection_path: str) -> List[Document]:
        if self.reads_offline:
            raise StoreUnavailableError("network down")
        return await super()._select(collection_path)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def memory_store() -> MemoryDocumentStore:
    return MemoryDocumentStore()


@pytest.fixture
def flaky_store() -> FlakyStore:
    return FlakyStore()


@pytest.fixture
def repository(memory_store: MemoryDocumentStore) -> BuildRepository:
    return BuildRepository(memory_store, app_id="test-app")


def build_document(name: str, *, is_default: bool = False, components: list | None = None) -> dict:
    return {
        "name": name,
        "isDefault": is_default,
        "createdAt": datetime(2025, 1, 1, tzinfo=timezone.utc),
        "components": components or [],
    }


async def within(awaitable, seconds: float = 5.0):
    return await asyncio.wait_for(awaitable, seconds)
