"""Generic repository for one contract stored under one key."""

from __future__ import annotations

import logging
from typing import AsyncIterator, Generic, Type, TypeVar

from pydantic import ValidationError

from headwind.contracts.common import HeadwindModel
from headwind.persistence.store import KeyValueStore

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=HeadwindModel)


class BaseRepository(Generic[T]):
    """Read / write / watch a single contract under ``key``.

    Serialization relies entirely on the contract's ``to_json_bytes()``
    and ``from_json_bytes()`` methods, no extra mapping layer. A stored
    value that no longer validates is logged and treated as missing.
    """

    def __init__(self, store: KeyValueStore, model_class: Type[T], key: str):
        self._store = store
        self._model_class = model_class
        self._key = key

    @property
    def key(self) -> str:
        return self._key

    def _decode(self, raw: bytes | None) -> T | None:
        if raw is None:
            return None
        try:
            return self._model_class.from_json_bytes(raw)
        except (ValidationError, ValueError):
            logger.exception("Failed to read %s, ignoring stored value", self._key)
            return None

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def get(self) -> T | None:
        """Fetch the stored value. Returns *None* if missing or unreadable."""
        return self._decode(await self._store.get(self._key))

    async def stream(self) -> AsyncIterator[T | None]:
        """Current value followed by every change."""
        async for raw in self._store.watch(self._key):
            yield self._decode(raw)

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    async def save(self, entity: T) -> None:
        await self._store.put(self._key, entity.to_json_bytes())

    async def delete(self) -> None:
        await self._store.delete(self._key)
