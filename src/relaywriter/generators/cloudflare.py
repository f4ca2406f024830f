import json
import logging
import re
from typing import Any, Dict

import httpx

from ..errors import MalformedUpstreamResponse, Unauthorized
from .base import TextGenerator, as_text, post_json
from .prompts import CONTINUE_INSTRUCTION, budgeted_user_prompt

logger = logging.getLogger(__name__)

GPT_OSS_PREFIX = "@cf/openai/gpt-oss"

_NON_ASCII_RE = re.compile(r"[^\x00-\x7F]")


def sanitize_ascii(text: str) -> str:
    """Replace non-ASCII characters; some Workers AI models only accept ASCII input."""
    return _NON_ASCII_RE.sub("?", text) if text else ""


def build_payload(model_name: str, document: str, output_budget: int) -> Dict[str, Any]:
    user_prompt = budgeted_user_prompt(sanitize_ascii(document), output_budget)
    if model_name.startswith(GPT_OSS_PREFIX):
        # gpt-oss models take a flat ``input`` instead of ``messages``.
        return {
            "input": f"System: {CONTINUE_INSTRUCTION}\n\nUser: {user_prompt}",
            "max_tokens": output_budget,
        }
    return {
        "messages": [
            {"role": "system", "content": CONTINUE_INSTRUCTION},
            {"role": "user", "content": user_prompt},
        ],
        "max_tokens": output_budget,
    }


def _stringify(payload: Any) -> str:
    if payload is None:
        return ""
    return payload if isinstance(payload, str) else json.dumps(payload)


def extract_text(data: Any) -> str:
    """Pull the generated text out of the many result shapes Workers AI returns."""
    result = data.get("result") if isinstance(data, dict) else None

    if isinstance(result, dict) and result.get("response"):
        return as_text(result["response"])
    if isinstance(result, dict) and result.get("choices"):
        choices = result["choices"]
        choice = choices[0] if isinstance(choices, list) else None
        if not isinstance(choice, dict):
            raise MalformedUpstreamResponse("Cloudflare choice is not an object")
        message = choice.get("message") or {}
        if not isinstance(message, dict):
            raise MalformedUpstreamResponse("Cloudflare choice message is not an object")
        return as_text(message.get("content") or choice.get("text"))
    if isinstance(result, str) and result:
        return result
    if isinstance(result, list) and result:
        return _stringify(result[0])
    if isinstance(result, (dict, list)):
        return _stringify(result)
    return _stringify(data)


class CloudflareGenerator(TextGenerator):
    """Cloudflare Workers AI, authenticated with server-side credentials."""

    adapter_kind = "cloudflare"

    def __init__(
        self,
        *,
        api_key: str | None,
        account_id: str | None,
        api_base: str,
        timeout_seconds: float = 60.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._account_id = account_id
        self._api_base = api_base.rstrip("/")
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
        if not self._api_key or not self._account_id:
            raise Unauthorized(
                "Cloudflare API key and account ID must be configured on the server "
                "(CLOUDFLARE_API_KEY and CLOUDFLARE_ACCOUNT_ID)."
            )

        url = f"{self._api_base}/accounts/{self._account_id}/ai/run/{model_name}"
        data = await post_json(
            self._client,
            url,
            build_payload(model_name, context, output_budget),
            headers={"Authorization": f"Bearer {self._api_key}"},
        )
        logger.debug("Cloudflare response keys: %s", list(data) if isinstance(data, dict) else type(data))
        return extract_text(data)
