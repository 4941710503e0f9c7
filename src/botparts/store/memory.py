"""Process-local document store used by tests and throwaway sessions."""

from __future__ import annotations

import copy
from typing import Any, Dict, List, Optional

from .base import Document, DocumentStore


class MemoryDocumentStore(DocumentStore):
    """Keeps documents in nested dicts; insertion order is preserved."""

    def __init__(self) -> None:
        super().__init__()
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}

    async def _insert(self, collection_path: str, document_id: str, fields: Dict[str, Any]) -> None:
        self._collections.setdefault(collection_path, {})[document_id] = fields

    async def _merge(self, collection_path: str, document_id: str, fields: Dict[str, Any]) -> bool:
        documents = self._collections.get(collection_path, {})
        if document_id not in documents:
            return False
        documents[document_id].update(fields)
        return True

    async def _select(self, collection_path: str) -> List[Document]:
        documents = self._collections.get(collection_path, {})
        return [Document(id=doc_id, fields=copy.deepcopy(fields)) for doc_id, fields in documents.items()]

    async def _fetch(self, collection_path: str, document_id: str) -> Optional[Document]:
        fields = self._collections.get(collection_path, {}).get(document_id)
        if fields is None:
            return None
        return Document(id=document_id, fields=copy.deepcopy(fields))
