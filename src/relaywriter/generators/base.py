import logging
from abc import ABC, abstractmethod
from typing import Any, Dict

import httpx

from ..errors import (
    GenerationError,
    GenerationTimeout,
    MalformedUpstreamResponse,
    Unauthorized,
    UpstreamRejected,
    UpstreamUnavailable,
)

logger = logging.getLogger(__name__)


class TextGenerator(ABC):
    """Produces a continuation of ``context`` from one backend family.

    Implementations raise a GenerationError subclass on any failure and
    never return None.
    """

    adapter_kind: str = ""

    @abstractmethod
    async def generate(
        self,
        context: str,
        output_budget: int,
        *,
        model_name: str,
        credential_ref: str | None = None,
    ) -> str:
        ...

    async def aclose(self) -> None:
        return None


def error_for_status(status_code: int, detail: str) -> GenerationError:
    """Map an upstream HTTP status to the matching GenerationError."""
    message = f"HTTP {status_code}: {detail[:300]}"
    if status_code in (401, 403):
        return Unauthorized(message)
    if status_code in (408, 429) or status_code >= 500:
        return UpstreamUnavailable(message)
    return UpstreamRejected(message)


def as_text(value: Any) -> str:
    """Coerce a provider reply to str (None becomes an empty string)."""
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


async def post_json(
    client: httpx.AsyncClient,
    url: str,
    payload: Dict[str, Any],
    headers: Dict[str, str] | None = None,
) -> Any:
    """POST a JSON payload and return the decoded JSON body.

    Transport, status and decoding problems are raised as GenerationError.
    """
    try:
        resp = await client.post(url, json=payload, headers=headers)
    except httpx.TimeoutException as e:
        raise GenerationTimeout(f"Request to {url} timed out") from e
    except httpx.TransportError as e:
        raise UpstreamUnavailable(f"Request to {url} failed: {e}") from e

    if resp.status_code >= 400:
        raise error_for_status(resp.status_code, resp.text)

    try:
        return resp.json()
    except ValueError as e:
        raise MalformedUpstreamResponse(f"Non-JSON response: {resp.text[:300]}") from e
