"""Turn orchestration for round-robin writing sessions.

One call to ``advance_turn`` produces exactly one turn: the next
contributor in rotation continues the session's document, the reply is
trimmed of anything it repeats, and the session is updated. Turns and
resets on the same session id run one at a time; different ids never
wait on each other.
"""

import logging
from typing import Sequence

from .errors import GenerationError, InvalidArgument, UpstreamFailure
from .generators import GeneratorRegistry
from .models import Contributor, Session, TurnResult
from .services.locks import SessionLockRegistry
from .services.session_store import SessionStore
from .trimmer import trim

logger = logging.getLogger(__name__)

SHORT_TURN_CHARS = 2


def select_contributor(contributors: Sequence[Contributor], turn_index: int) -> Contributor:
    """Pick the contributor for ``turn_index``; recomputed from the list given on every call."""
    return contributors[turn_index % len(contributors)]


def build_context(session: Session) -> str:
    """Every contributor sees the whole story so far, not just the last turn."""
    return session.document


class TurnOrchestrator:
    """Coordinates sessions, contributor rotation, generation and trimming."""

    def __init__(
        self,
        store: SessionStore,
        generators: GeneratorRegistry,
        *,
        max_output_budget: int | None = None,
        locks: SessionLockRegistry | None = None,
    ) -> None:
        self._store = store
        self._generators = generators
        self._max_output_budget = max_output_budget
        self._locks = locks if locks is not None else SessionLockRegistry()

    @property
    def store(self) -> SessionStore:
        return self._store

    def _validate(self, session_id: str, contributors: Sequence[Contributor], output_budget: int) -> None:
        """Every contributor in the list must name a registered adapter, not only the one selected."""
        if not session_id or not session_id.strip():
            raise InvalidArgument("sessionId is required")
        if not contributors:
            raise InvalidArgument("At least one contributor is required")
        if isinstance(output_budget, bool) or not isinstance(output_budget, int) or output_budget <= 0:
            raise InvalidArgument("outputBudget must be a positive integer")
        if self._max_output_budget is not None and output_budget > self._max_output_budget:
            raise InvalidArgument(
                f"outputBudget must not exceed {self._max_output_budget}"
            )
        for contributor in contributors:
            if contributor.adapter_kind not in self._generators:
                raise InvalidArgument(f"Unsupported provider: {contributor.adapter_kind}")

    async def advance_turn(
        self,
        session_id: str,
        contributors: Sequence[Contributor],
        initial_prompt: str | None,
        output_budget: int,
    ) -> TurnResult:
        """Run one turn for ``session_id`` and return the cleaned contribution.

        ``initial_prompt`` only matters when the session does not exist yet.
        On a generation failure the session is left exactly as it was and
        UpstreamFailure is raised naming the contributor.
        """
        self._validate(session_id, contributors, output_budget)

        async with self._locks.hold(session_id):
            session = await self._store.get(session_id)
            if session is None:
                if not initial_prompt or not initial_prompt.strip():
                    raise InvalidArgument("prompt is required to start a session")
                session = await self._store.get_or_create(session_id, initial_prompt)

            contributor = select_contributor(contributors, session.turn_index)
            generator = self._generators.get(contributor.adapter_kind)
            context = build_context(session)
            logger.info(
                "Session %s turn %d using %s (%s), document length %d",
                session_id,
                session.turn_index,
                contributor.model_name,
                contributor.adapter_kind,
                len(context),
            )

            try:
                raw = await generator.generate(
                    context,
                    output_budget,
                    model_name=contributor.model_name,
                    credential_ref=contributor.credential_ref,
                )
            except GenerationError as e:
                logger.warning(
                    "Session %s turn %d failed with %s: %s",
                    session_id,
                    session.turn_index,
                    contributor.contributor_id,
                    e,
                )
                raise UpstreamFailure(e, contributor.contributor_id) from e

            cleaned = trim(session.document, raw)
            if len(cleaned.strip()) < SHORT_TURN_CHARS:
                logger.warning(
                    "Session %s turn %d: response too short after cleanup: %r",
                    session_id,
                    session.turn_index,
                    cleaned,
                )

            record = session.record_turn(contributor, cleaned)
            await self._store.save(session)
            logger.info(
                "Session %s completed turn %d, document length %d",
                session_id,
                record.turn_index,
                len(session.document),
            )
            return TurnResult(
                cleaned_text=cleaned,
                contributor=contributor,
                turn_index=record.turn_index,
            )

    async def reset(self, session_id: str) -> bool:
        """Delete the session; waits for any turn in flight on the same id first."""
        async with self._locks.hold(session_id):
            existed = await self._store.delete(session_id)
        logger.info("Session %s reset (existed=%s)", session_id, existed)
        return existed

    async def get_session(self, session_id: str) -> Session | None:
        return await self._store.get(session_id)
