import logging
from typing import Any, Dict

import httpx

from ..errors import MalformedUpstreamResponse, Unauthorized, UpstreamRejected
from .base import TextGenerator, as_text, post_json
from .prompts import single_prompt

logger = logging.getLogger(__name__)

MIN_OUTPUT_TOKENS = 10
SMALL_BUDGET_STOPS = [".", "!", "?", ",", ";"]


def generation_config(output_budget: int, temperature: float) -> Dict[str, Any]:
    """Gemini refuses tiny token limits, so very small budgets lean on stop sequences."""
    stops = ["\n\n"]
    if output_budget <= MIN_OUTPUT_TOKENS:
        stops.extend(SMALL_BUDGET_STOPS)
    return {
        "maxOutputTokens": max(output_budget, MIN_OUTPUT_TOKENS),
        "temperature": temperature,
        "stopSequences": stops,
    }


def truncate_words(text: str, output_budget: int) -> str:
    """Cut an overlong reply for small budgets to roughly ``output_budget`` words."""
    if output_budget > MIN_OUTPUT_TOKENS:
        return text
    words = text.split(" ")
    if len(words) > output_budget * 1.2:
        logger.info("Truncated Gemini response to %d words", output_budget)
        return " ".join(words[: max(output_budget, 3)])
    return text


def extract_text(data: Any) -> str:
    """Join the text parts of the first candidate of a generateContent reply."""
    if not isinstance(data, dict):
        raise MalformedUpstreamResponse("Gemini response is not a JSON object")

    candidates = data.get("candidates") or []
    if not isinstance(candidates, list):
        raise MalformedUpstreamResponse("Gemini candidates is not a list")
    if not candidates:
        feedback = data.get("promptFeedback")
        block_reason = feedback.get("blockReason") if isinstance(feedback, dict) else None
        if block_reason:
            raise UpstreamRejected(f"Gemini blocked the prompt: {block_reason}")
        raise MalformedUpstreamResponse("Gemini response has no candidates")

    candidate = candidates[0]
    content = candidate.get("content") if isinstance(candidate, dict) else None
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        raise MalformedUpstreamResponse("Gemini candidate has no content parts")
    return "".join(as_text(p.get("text")) for p in parts if isinstance(p, dict))


class GeminiGenerator(TextGenerator):
    """Google Gemini over the generateContent REST endpoint."""

    adapter_kind = "gemini"

    def __init__(
        self,
        *,
        system_prompt: str,
        base_url: str,
        temperature: float = 0.7,
        timeout_seconds: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._system_prompt = system_prompt
        self._base_url = base_url.rstrip("/")
        self._temperature = temperature
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def generate(
        self,
        context: str,
        output_budget: int,
        *,
        model_name: str,
        credential_ref: str | None = None,
    ) -> str:
        if not credential_ref:
            raise Unauthorized("An API key is required for gemini")

        model = model_name.removeprefix("models/")
        url = f"{self._base_url}/models/{model}:generateContent"
        payload = {
            "contents": [
                {"role": "user", "parts": [{"text": single_prompt(context, self._system_prompt)}]}
            ],
            "generationConfig": generation_config(output_budget, self._temperature),
        }
        data = await post_json(
            self._client, url, payload, headers={"x-goog-api-key": credential_ref}
        )
        return truncate_words(extract_text(data), output_budget)
