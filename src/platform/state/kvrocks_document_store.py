"""
Kvrocks Document Store

Durable document store over Kvrocks (Redis protocol), used by every
repository in deployments.

Key layout per collection:
    {prefix}:{collection}:doc:{id}                  -> orjson document
    {prefix}:{collection}:ids                       -> SET of document ids
    {prefix}:{collection}:counters:{id}             -> HASH of dotted field -> int
    {prefix}:{collection}:unique:{fields}:{values}  -> owning document id

Unique index entries are claimed with SET NX before a document is written, so
two writers racing for the same compound key cannot both win. Counters live
in their own hash and move with HINCRBY; ``get`` overlays them on the stored
document, so a ``replace`` carrying stale counter values never rolls them back.
"""

from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

import orjson
from redis.asyncio import Redis as AsyncRedis

from src.platform.exception.exceptions import ConflictError, NotFoundError
from src.platform.logging.loguru_io import Logger
from src.platform.state.document_store import Document
from src.platform.state.kvrocks_client import kvrocks_client


_DATE_TAG = '$date'


def _encode_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return {_DATE_TAG: value.isoformat()}
    raise TypeError(f'{type(value).__name__} is not JSON serializable')


def _restore(value: Any) -> Any:
    if isinstance(value, dict):
        if len(value) == 1 and _DATE_TAG in value:
            return datetime.fromisoformat(value[_DATE_TAG])
        return {key: _restore(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_restore(item) for item in value]
    return value


def encode_document(document: Document) -> bytes:
    """Serialize a document; datetimes are tagged so they come back as datetimes."""
    return orjson.dumps(document, default=_encode_default, option=orjson.OPT_PASSTHROUGH_DATETIME)


def decode_document(raw: str | bytes) -> Document:
    return _restore(orjson.loads(raw))


def _overlay_counters(document: Document, counters: Dict[str, str]) -> Document:
    for field, value in counters.items():
        *parents, leaf = field.split('.')
        target = document
        for part in parents:
            target = target.setdefault(part, {})
        target[leaf] = int(value)
    return document


def _read_path(document: Document, field: str) -> Any:
    target: Any = document
    for part in field.split('.'):
        if not isinstance(target, dict):
            return None
        target = target.get(part)
    return target


class KvrocksDocumentStore:
    def __init__(
        self,
        *,
        key_prefix: str = 'expo',
        client_provider: Callable[[], AsyncRedis] = kvrocks_client.get_client,
    ) -> None:
        self.key_prefix = key_prefix
        self._client_provider = client_provider
        self._unique_indexes: Dict[str, List[Tuple[str, ...]]] = {}

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------
    def _doc_key(self, collection: str, document_id: str) -> str:
        return f'{self.key_prefix}:{collection}:doc:{document_id}'

    def _ids_key(self, collection: str) -> str:
        return f'{self.key_prefix}:{collection}:ids'

    def _counters_key(self, collection: str, document_id: str) -> str:
        return f'{self.key_prefix}:{collection}:counters:{document_id}'

    def _unique_keys(self, collection: str, document: Document) -> List[Tuple[str, str]]:
        """(index description, key) for every unique index on the collection"""
        keys = []
        for index in self._unique_indexes.get(collection, []):
            values = '|'.join(str(document.get(field)) for field in index)
            keys.append(
                (
                    str(dict(zip(index, (document.get(f) for f in index), strict=True))),
                    f'{self.key_prefix}:{collection}:unique:{",".join(index)}:{values}',
                )
            )
        return keys

    # ------------------------------------------------------------------
    # Unique index claims
    # ------------------------------------------------------------------
    def create_unique_index(self, collection: str, fields: Iterable[str]) -> None:
        index = tuple(fields)
        indexes = self._unique_indexes.setdefault(collection, [])
        if index not in indexes:
            indexes.append(index)
            Logger.base.debug(f'🗂️ [STORE] Unique index {collection}{index}')

    async def _claim_unique_keys(
        self, client: AsyncRedis, collection: str, document_id: str, keys: List[Tuple[str, str]]
    ) -> List[str]:
        """SET NX every key; on a clash undo the claims made so far and raise"""
        claimed: List[str] = []
        for description, key in keys:
            if await client.set(key, document_id, nx=True):
                claimed.append(key)
                continue
            if await client.get(key) == document_id:
                continue
            if claimed:
                await client.delete(*claimed)
            raise ConflictError(f'Duplicate {collection} for {description}')
        return claimed

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------
    async def insert(self, collection: str, document: Document) -> Document:
        client = self._client_provider()
        document_id = document['id']
        claimed = await self._claim_unique_keys(
            client, collection, document_id, self._unique_keys(collection, document)
        )

        written = await client.set(
            self._doc_key(collection, document_id), encode_document(document), nx=True
        )
        if not written:
            if claimed:
                await client.delete(*claimed)
            raise ConflictError(f'{collection} {document_id} already exists')

        await client.sadd(self._ids_key(collection), document_id)
        return decode_document(encode_document(document))

    async def get(self, collection: str, document_id: str) -> Optional[Document]:
        client = self._client_provider()
        async with client.pipeline(transaction=False) as pipe:
            pipe.get(self._doc_key(collection, document_id))
            pipe.hgetall(self._counters_key(collection, document_id))
            raw, counters = await pipe.execute()
        if raw is None:
            return None
        return _overlay_counters(decode_document(raw), counters)

    async def replace(self, collection: str, document: Document) -> Document:
        client = self._client_provider()
        document_id = document['id']
        raw = await client.get(self._doc_key(collection, document_id))
        if raw is None:
            raise NotFoundError(f'{collection} {document_id} not found')

        old_keys = {key for _, key in self._unique_keys(collection, decode_document(raw))}
        new_keys = self._unique_keys(collection, document)
        await self._claim_unique_keys(
            client, collection, document_id, [(d, k) for d, k in new_keys if k not in old_keys]
        )

        written = await client.set(
            self._doc_key(collection, document_id), encode_document(document), xx=True
        )
        if not written:
            raise NotFoundError(f'{collection} {document_id} not found')

        if stale := old_keys - {key for _, key in new_keys}:
            await client.delete(*stale)
        return await self.get(collection, document_id) or document

    async def delete(self, collection: str, document_id: str) -> bool:
        client = self._client_provider()
        raw = await client.get(self._doc_key(collection, document_id))
        if raw is None:
            return False

        unique_keys = [key for _, key in self._unique_keys(collection, decode_document(raw))]
        async with client.pipeline(transaction=True) as pipe:
            pipe.delete(self._doc_key(collection, document_id))
            pipe.delete(self._counters_key(collection, document_id))
            pipe.srem(self._ids_key(collection), document_id)
            if unique_keys:
                pipe.delete(*unique_keys)
            removed, *_ = await pipe.execute()
        return bool(removed)

    async def find(
        self, collection: str, predicate: Optional[Callable[[Document], bool]] = None
    ) -> List[Document]:
        client = self._client_provider()
        document_ids = sorted(await client.smembers(self._ids_key(collection)))
        if not document_ids:
            return []

        async with client.pipeline(transaction=False) as pipe:
            for document_id in document_ids:
                pipe.get(self._doc_key(collection, document_id))
                pipe.hgetall(self._counters_key(collection, document_id))
            results = await pipe.execute()

        documents = []
        for raw, counters in zip(results[::2], results[1::2], strict=True):
            if raw is None:
                continue  # deleted between SMEMBERS and GET
            document = _overlay_counters(decode_document(raw), counters)
            if predicate is None or predicate(document):
                documents.append(document)
        return documents

    async def increment(
        self, collection: str, document_id: str, field: str, amount: int = 1
    ) -> int:
        """
        Atomically add ``amount`` to a numeric field (dotted paths reach nested dicts).

        The first increment seeds the counter from the stored document with
        HSETNX, so concurrent first increments still add up.

        Returns:
            The value after the increment
        """
        client = self._client_provider()
        raw = await client.get(self._doc_key(collection, document_id))
        if raw is None:
            raise NotFoundError(f'{collection} {document_id} not found')

        seed = _read_path(decode_document(raw), field) or 0
        counters_key = self._counters_key(collection, document_id)
        async with client.pipeline(transaction=True) as pipe:
            pipe.hsetnx(counters_key, field, int(seed))
            pipe.hincrby(counters_key, field, amount)
            _, value = await pipe.execute()
        return int(value)
