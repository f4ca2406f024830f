import sys
from pathlib import Path
from typing import Awaitable, Callable, List

import pytest


_root = Path(__file__).resolve().parents[1]
_src = _root / "src"
if _src.exists() and str(_src) not in sys.path:
    sys.path.insert(0, str(_src))

from relaywriter.generators import GeneratorRegistry, TextGenerator  # noqa: E402
from relaywriter.models import Contributor  # noqa: E402
from relaywriter.orchestrator import TurnOrchestrator  # noqa: E402
from relaywriter.services.session_store import InMemorySessionStore  # noqa: E402


class FakeGenerator(TextGenerator):
    """Scripted generator: answers from ``replies`` in order, or via ``handler``."""

    adapter_kind = "fake"

    def __init__(self) -> None:
        self.replies: List[object] = []
        self.handler: Callable[[str, int, str], Awaitable[str]] | None = None
        self.calls: List[dict] = []

    async def generate(self, context, output_budget, *, model_name, credential_ref=None):
        self.calls.append(
            {
                "context": context,
                "output_budget": output_budget,
                "model_name": model_name,
                "credential_ref": credential_ref,
            }
        )
        if self.handler is not None:
            return await self.handler(context, output_budget, model_name)
        reply = self.replies.pop(0) if self.replies else f"words from {model_name}"
        if isinstance(reply, Exception):
            raise reply
        return reply


def make_contributor(name: str, kind: str = "fake") -> Contributor:
    return Contributor(
        contributor_id=name,
        adapter_kind=kind,
        model_name=name,
        display_name=name.upper(),
        credential_ref="key-" + name,
    )


@pytest.fixture
def fake_generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def orchestrator(store: InMemorySessionStore, fake_generator: FakeGenerator) -> TurnOrchestrator:
    """Orchestrator over an in-memory store and the scripted generator."""
    return TurnOrchestrator(
        store,
        GeneratorRegistry([fake_generator]),
        max_output_budget=5000,
    )
