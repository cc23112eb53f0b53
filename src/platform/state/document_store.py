"""
Document Store

The contract every repository persists through: named collections of plain
dict documents, unique compound indexes and atomic counter increments.
Repositories map attrs entities to and from these documents.

``KvrocksDocumentStore`` is the durable implementation. ``InMemoryDocumentStore``
keeps everything in the process and backs the tests and local demos.

The in-memory store never awaits between reading and writing a collection, so
each of its calls is atomic with respect to other tasks on the event loop.
"""

import copy
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, Tuple

from src.platform.exception.exceptions import ConflictError, NotFoundError
from src.platform.logging.loguru_io import Logger


Document = Dict[str, Any]


class DocumentStore(Protocol):
    def create_unique_index(self, collection: str, fields: Iterable[str]) -> None: ...

    async def insert(self, collection: str, document: Document) -> Document: ...

    async def get(self, collection: str, document_id: str) -> Optional[Document]: ...

    async def replace(self, collection: str, document: Document) -> Document: ...

    async def delete(self, collection: str, document_id: str) -> bool: ...

    async def find(
        self, collection: str, predicate: Optional[Callable[[Document], bool]] = None
    ) -> List[Document]: ...

    async def increment(
        self, collection: str, document_id: str, field: str, amount: int = 1
    ) -> int: ...


class InMemoryDocumentStore:
    def __init__(self) -> None:
        self._collections: Dict[str, Dict[str, Document]] = {}
        # collection -> field tuples that must be unique together
        self._unique_indexes: Dict[str, List[Tuple[str, ...]]] = {}

    def create_unique_index(self, collection: str, fields: Iterable[str]) -> None:
        index = tuple(fields)
        indexes = self._unique_indexes.setdefault(collection, [])
        if index not in indexes:
            indexes.append(index)
            Logger.base.debug(f'🗂️ [STORE] Unique index {collection}{index}')

    def _check_unique(self, collection: str, document: Document) -> None:
        for index in self._unique_indexes.get(collection, []):
            key = tuple(document.get(field) for field in index)
            for existing in self._collections.get(collection, {}).values():
                if existing['id'] == document['id']:
                    continue
                if tuple(existing.get(field) for field in index) == key:
                    raise ConflictError(
                        f'Duplicate {collection} for {dict(zip(index, key, strict=True))}'
                    )

    async def insert(self, collection: str, document: Document) -> Document:
        docs = self._collections.setdefault(collection, {})
        if document['id'] in docs:
            raise ConflictError(f'{collection} {document["id"]} already exists')
        self._check_unique(collection, document)
        docs[document['id']] = copy.deepcopy(document)
        return copy.deepcopy(document)

    async def get(self, collection: str, document_id: str) -> Optional[Document]:
        document = self._collections.get(collection, {}).get(document_id)
        return copy.deepcopy(document) if document is not None else None

    async def replace(self, collection: str, document: Document) -> Document:
        docs = self._collections.get(collection, {})
        if document['id'] not in docs:
            raise NotFoundError(f'{collection} {document["id"]} not found')
        self._check_unique(collection, document)
        docs[document['id']] = copy.deepcopy(document)
        return copy.deepcopy(document)

    async def delete(self, collection: str, document_id: str) -> bool:
        return self._collections.get(collection, {}).pop(document_id, None) is not None

    async def find(
        self, collection: str, predicate: Optional[Callable[[Document], bool]] = None
    ) -> List[Document]:
        return [
            copy.deepcopy(document)
            for document in self._collections.get(collection, {}).values()
            if predicate is None or predicate(document)
        ]

    async def increment(
        self, collection: str, document_id: str, field: str, amount: int = 1
    ) -> int:
        """
        Atomically add ``amount`` to a numeric field (dotted paths reach nested dicts).

        Returns:
            The value after the increment
        """
        document = self._collections.get(collection, {}).get(document_id)
        if document is None:
            raise NotFoundError(f'{collection} {document_id} not found')

        *parents, leaf = field.split('.')
        target = document
        for part in parents:
            target = target.setdefault(part, {})
        target[leaf] = target.get(leaf, 0) + amount
        return target[leaf]

    def clear(self) -> None:
        self._collections.clear()
