from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True)
class Contributor:
    """A model taking part in the rotation. Request-scoped, never persisted."""

    contributor_id: str
    adapter_kind: str
    model_name: str
    display_name: str = ""
    credential_ref: str | None = field(default=None, repr=False)


@dataclass
class TurnRecord:
    """One completed turn of a session."""

    turn_index: int
    contributor_id: str
    cleaned_text: str
    display_name: str = ""
    adapter_kind: str = ""
    model_name: str = ""


@dataclass
class Session:
    """Per-session writing state (accumulated document, turn counter, history)."""

    session_id: str
    document: str
    turn_index: int = 0
    history: List[TurnRecord] = field(default_factory=list)

    def record_turn(self, contributor: Contributor, cleaned_text: str) -> TurnRecord:
        """Append a completed turn and extend the document with it."""
        record = TurnRecord(
            turn_index=self.turn_index,
            contributor_id=contributor.contributor_id,
            cleaned_text=cleaned_text,
            display_name=contributor.display_name,
            adapter_kind=contributor.adapter_kind,
            model_name=contributor.model_name,
        )
        self.history.append(record)
        self.document += " " + cleaned_text
        self.turn_index += 1
        return record


@dataclass(frozen=True)
class TurnResult:
    cleaned_text: str
    contributor: Contributor
    turn_index: int

    @property
    def contributor_id(self) -> str:
        return self.contributor.contributor_id
