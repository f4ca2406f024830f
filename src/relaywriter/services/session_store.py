import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict

from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from ..errors import SessionStoreError
from ..models import Session, TurnRecord
from .redis import RedisCrudService, get_redis_crud_service

logger = logging.getLogger(__name__)

SESSION_KEY_PREFIX = "relaywriter:session:"


def session_to_dict(session: Session) -> Dict[str, Any]:
    """Serialize a Session to a JSON-serializable dict."""
    return {
        "session_id": session.session_id,
        "document": session.document,
        "turn_index": session.turn_index,
        "history": [
            {
                "turn_index": r.turn_index,
                "contributor_id": r.contributor_id,
                "cleaned_text": r.cleaned_text,
                "display_name": r.display_name,
                "adapter_kind": r.adapter_kind,
                "model_name": r.model_name,
            }
            for r in session.history
        ],
    }


def dict_to_session(data: Dict[str, Any]) -> Session:
    """Build a Session from a dict (e.g. from Redis)."""
    return Session(
        session_id=data["session_id"],
        document=data["document"],
        turn_index=int(data.get("turn_index", 0)),
        history=[TurnRecord(**r) for r in data.get("history", [])],
    )


class SessionStore(ABC):
    """Keyed registry of live sessions.

    Callers serialize operations on one session id themselves (see
    SessionLockRegistry); stores only guarantee that a single operation is
    atomic.
    """

    @abstractmethod
    async def get(self, session_id: str) -> Session | None:
        ...

    @abstractmethod
    async def get_or_create(self, session_id: str, initial_document: str) -> Session:
        ...

    @abstractmethod
    async def save(self, session: Session) -> None:
        ...

    @abstractmethod
    async def delete(self, session_id: str) -> bool:
        ...

    async def close(self) -> None:
        return None


class InMemorySessionStore(SessionStore):
    """Process-wide dict of sessions; lives as long as the process."""

    def __init__(self) -> None:
        self._sessions: Dict[str, Session] = {}

    async def get(self, session_id: str) -> Session | None:
        return self._sessions.get(session_id)

    async def get_or_create(self, session_id: str, initial_document: str) -> Session:
        session = self._sessions.get(session_id)
        if session is None:
            session = Session(session_id=session_id, document=initial_document)
            self._sessions[session_id] = session
            logger.info("New session %s created", session_id)
        return session

    async def save(self, session: Session) -> None:
        self._sessions[session.session_id] = session

    async def delete(self, session_id: str) -> bool:
        return self._sessions.pop(session_id, None) is not None

    def __len__(self) -> int:
        return len(self._sessions)


class RedisSessionStore(SessionStore):
    """Sessions stored as JSON documents in Redis, without expiry."""

    def __init__(self, redis_crud: RedisCrudService) -> None:
        self._redis = redis_crud

    def _key(self, session_id: str) -> str:
        return f"{SESSION_KEY_PREFIX}{session_id}"

    async def get(self, session_id: str) -> Session | None:
        raw = await self._redis.get(self._key(session_id))
        if raw is None:
            return None
        try:
            return dict_to_session(json.loads(raw))
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            logger.warning("Invalid session data for %s: %s", session_id, e)
            raise SessionStoreError(f"Corrupt session data for {session_id}") from e

    async def get_or_create(self, session_id: str, initial_document: str) -> Session:
        session = await self.get(session_id)
        if session is not None:
            return session
        session = Session(session_id=session_id, document=initial_document)
        created = await self._redis.set_if_absent(
            self._key(session_id), json.dumps(session_to_dict(session))
        )
        if created:
            logger.info("New session %s created", session_id)
            return session
        existing = await self.get(session_id)
        if existing is None:
            raise SessionStoreError(f"Session {session_id} vanished during creation")
        return existing

    async def save(self, session: Session) -> None:
        await self._redis.set(
            self._key(session.session_id), json.dumps(session_to_dict(session))
        )

    async def delete(self, session_id: str) -> bool:
        return await self._redis.delete(self._key(session_id))

    async def close(self) -> None:
        await self._redis.close()


async def build_session_store() -> SessionStore:
    """Return a Redis-backed store when redis_url is configured and reachable.

    Falls back to the in-memory store otherwise.
    """
    redis_crud = get_redis_crud_service()
    if redis_crud is None:
        return InMemorySessionStore()
    try:
        await redis_crud.connect()
    except (RedisConnectionError, RedisTimeoutError, ConnectionError, TimeoutError) as e:
        logger.warning("Redis unavailable, using in-memory sessions: %s", e)
        return InMemorySessionStore()
    return RedisSessionStore(redis_crud)
