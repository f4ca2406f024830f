"""HTTP request/response bodies.

Field names are camelCase on the wire. Requests also accept the names the
browser client historically sent (``models``, ``provider``, ``apiKey``,
``tokensPerTurn``).
"""

from typing import Any, List, Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from .errors import InvalidArgument
from .models import Contributor, Session, TurnResult


class ContributorIn(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    contributor_id: str | None = Field(
        default=None, validation_alias=AliasChoices("contributorId", "contributor_id")
    )
    display_name: str | None = Field(
        default=None, validation_alias=AliasChoices("displayName", "display_name")
    )
    adapter_kind: str = Field(
        validation_alias=AliasChoices("adapterKind", "adapter_kind", "provider")
    )
    model_name: str = Field(validation_alias=AliasChoices("modelName", "model_name"))
    credential_ref: str | None = Field(
        default=None,
        validation_alias=AliasChoices("credentialRef", "credential_ref", "apiKey"),
        repr=False,
    )

    def to_contributor(self) -> Contributor:
        return Contributor(
            contributor_id=self.contributor_id or self.model_name,
            adapter_kind=self.adapter_kind.strip().lower(),
            model_name=self.model_name,
            display_name=self.display_name or self.model_name,
            credential_ref=self.credential_ref or None,
        )


_CONTRIBUTORS = TypeAdapter(List[ContributorIn])
_PROMPT = TypeAdapter(Optional[str])
_BUDGET = TypeAdapter(int)


class ChatRequest(BaseModel):
    """Body of ``POST /chat``.

    Only ``sessionId`` and ``reset`` are checked when the body is parsed.
    The turn fields are validated by ``turn_arguments`` so that a reset is
    never refused because of them.
    """

    session_id: str = Field(validation_alias=AliasChoices("sessionId", "session_id"))
    reset: bool = False
    contributors: Any = Field(
        default_factory=list, validation_alias=AliasChoices("contributors", "models")
    )
    prompt: Any = None
    output_budget: Any = Field(
        default=None,
        validation_alias=AliasChoices("outputBudget", "output_budget", "tokensPerTurn"),
    )

    def turn_arguments(self) -> Tuple[List[Contributor], Optional[str], int]:
        """Validate the fields an advance needs; raises InvalidArgument."""
        try:
            contributors = _CONTRIBUTORS.validate_python(self.contributors or [])
            prompt = _PROMPT.validate_python(self.prompt)
            budget = 0 if self.output_budget is None else _BUDGET.validate_python(self.output_budget)
        except ValidationError as e:
            raise InvalidArgument(f"Invalid request: {e.errors()}") from e
        return [c.to_contributor() for c in contributors], prompt, budget


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, protected_namespaces=()
    )


class ResetResponse(_CamelModel):
    success: bool = True
    message: str = "Session reset successfully"


class TurnResponse(_CamelModel):
    cleaned_text: str
    contributor_id: str
    turn_index: int
    display_name: str
    adapter_kind: str
    model_name: str

    @classmethod
    def from_result(cls, result: TurnResult) -> "TurnResponse":
        return cls(
            cleaned_text=result.cleaned_text,
            contributor_id=result.contributor.contributor_id,
            turn_index=result.turn_index,
            display_name=result.contributor.display_name,
            adapter_kind=result.contributor.adapter_kind,
            model_name=result.contributor.model_name,
        )


class ErrorResponse(_CamelModel):
    error: str
    contributor_id: str = "unknown"


class TurnRecordOut(_CamelModel):
    turn_index: int
    contributor_id: str
    cleaned_text: str
    display_name: str = ""
    adapter_kind: str = ""
    model_name: str = ""


class SessionSnapshot(_CamelModel):
    session_id: str
    document: str
    turn_index: int
    history: List[TurnRecordOut]

    @classmethod
    def from_session(cls, session: Session) -> "SessionSnapshot":
        return cls(
            session_id=session.session_id,
            document=session.document,
            turn_index=session.turn_index,
            history=[
                TurnRecordOut(
                    turn_index=r.turn_index,
                    contributor_id=r.contributor_id,
                    cleaned_text=r.cleaned_text,
                    display_name=r.display_name,
                    adapter_kind=r.adapter_kind,
                    model_name=r.model_name,
                )
                for r in session.history
            ],
        )
