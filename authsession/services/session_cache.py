"""
Session token cache with an in-process fallback.

Redis is the primary store. When it cannot be reached, writes, reads and
deletes are routed to the in-process store instead. The routing for every
``(operation, primary outcome)`` pair lives in ``ROUTING`` below:

    operation  primary OK          primary UNAVAILABLE
    ---------  ------------------  -------------------
    save       primary             fallback
    get        primary (even miss) fallback
    delete     primary             fallback

A primary miss is authoritative: the fallback is not consulted while Redis is
reachable, so entries written there during an outage are never promoted and
may go stale.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, Optional, Protocol, Tuple

from authsession.clients.memory_store import InMemorySessionStore
from authsession.models.session import SessionRecord, StoreResult, StoreStatus

logger = logging.getLogger(__name__)


class PrimaryStore(Protocol):
    async def set(self, key: str, record: SessionRecord) -> StoreResult: ...

    async def get(self, key: str, *, user_id: str) -> StoreResult: ...

    async def delete(self, key: str) -> StoreResult: ...


class Operation(str, Enum):
    SAVE = "save"
    GET = "get"
    DELETE = "delete"


class Route(str, Enum):
    PRIMARY = "primary"
    FALLBACK = "fallback"


ROUTING: Dict[Tuple[Operation, StoreStatus], Route] = {
    (Operation.SAVE, StoreStatus.OK): Route.PRIMARY,
    (Operation.SAVE, StoreStatus.UNAVAILABLE): Route.FALLBACK,
    (Operation.GET, StoreStatus.OK): Route.PRIMARY,
    (Operation.GET, StoreStatus.UNAVAILABLE): Route.FALLBACK,
    (Operation.DELETE, StoreStatus.OK): Route.PRIMARY,
    (Operation.DELETE, StoreStatus.UNAVAILABLE): Route.FALLBACK,
}

_NO_PRIMARY = StoreResult.unavailable("no primary store configured")


class SessionCache:
    """Single entry point for reading and writing per-user token pairs.

    None of the public methods raise on backend failure.
    """

    def __init__(
        self,
        primary: Optional[PrimaryStore],
        fallback: InMemorySessionStore,
        *,
        key_prefix: str = "session:",
    ) -> None:
        self._primary = primary
        self._fallback = fallback
        self._key_prefix = key_prefix
        if primary is None:
            logger.warning("No primary session store configured; sessions are kept in memory only")

    def key_for(self, user_id: str) -> str:
        return f"{self._key_prefix}{user_id}"

    async def save(
        self,
        user_id: str,
        access_token: Optional[str],
        refresh_token: Optional[str],
    ) -> None:
        record = SessionRecord(
            user_id=user_id, access_token=access_token, refresh_token=refresh_token
        )
        key = self.key_for(user_id)
        outcome = await self._primary.set(key, record) if self._primary else _NO_PRIMARY

        if self._route(Operation.SAVE, outcome) is Route.FALLBACK:
            self._fallback.put(key, record)

    async def get(self, user_id: str) -> Optional[SessionRecord]:
        key = self.key_for(user_id)
        outcome = (
            await self._primary.get(key, user_id=user_id) if self._primary else _NO_PRIMARY
        )

        if self._route(Operation.GET, outcome) is Route.FALLBACK:
            return self._fallback.get(key)
        return outcome.record

    async def delete(self, user_id: str) -> None:
        key = self.key_for(user_id)
        outcome = await self._primary.delete(key) if self._primary else _NO_PRIMARY

        if self._route(Operation.DELETE, outcome) is Route.FALLBACK:
            self._fallback.delete(key)

    @staticmethod
    def _route(operation: Operation, outcome: StoreResult) -> Route:
        route = ROUTING[(operation, outcome.status)]
        if route is Route.FALLBACK and outcome is not _NO_PRIMARY:
            logger.warning(
                "Primary session store unavailable during %s, using in-memory store: %s",
                operation.value,
                outcome.error,
            )
        return route


__all__ = ["Operation", "PrimaryStore", "Route", "ROUTING", "SessionCache"]
