import logging
from typing import Any, Callable, Dict, List

import openai
from openai import AsyncOpenAI

from ..errors import (
    GenerationTimeout,
    MalformedUpstreamResponse,
    Unauthorized,
    UpstreamRejected,
    UpstreamUnavailable,
)
from .base import TextGenerator, as_text
from .prompts import chat_messages, perplexity_messages

logger = logging.getLogger(__name__)

MessageBuilder = Callable[[str, str, int], List[Dict[str, str]]]


def default_messages(document: str, system_prompt: str, output_budget: int) -> List[Dict[str, str]]:
    return chat_messages(document, system_prompt)


class OpenAICompatibleGenerator(TextGenerator):
    """Chat-completions backend (OpenAI itself, or any compatible base URL).

    A client is built per call because the API key travels with each
    request rather than living in server configuration.
    """

    def __init__(
        self,
        adapter_kind: str,
        *,
        system_prompt: str,
        base_url: str | None = None,
        temperature: float = 0.7,
        timeout_seconds: float = 60.0,
        build_messages: MessageBuilder = default_messages,
        client_factory: Callable[..., Any] = AsyncOpenAI,
    ) -> None:
        self.adapter_kind = adapter_kind
        self._system_prompt = system_prompt
        self._base_url = base_url
        self._temperature = temperature
        self._timeout = timeout_seconds
        self._build_messages = build_messages
        self._client_factory = client_factory

    async def generate(
        self,
        context: str,
        output_budget: int,
        *,
        model_name: str,
        credential_ref: str | None = None,
    ) -> str:
        if not credential_ref:
            raise Unauthorized(f"An API key is required for {self.adapter_kind}")

        client = self._client_factory(
            api_key=credential_ref,
            base_url=self._base_url,
            timeout=self._timeout,
        )
        messages = self._build_messages(context, self._system_prompt, output_budget)
        try:
            completion = await client.chat.completions.create(
                model=model_name,
                messages=messages,
                max_tokens=output_budget,
                temperature=self._temperature,
            )
        except openai.APITimeoutError as e:
            raise GenerationTimeout(str(e)) from e
        except openai.APIConnectionError as e:
            raise UpstreamUnavailable(str(e)) from e
        except (openai.AuthenticationError, openai.PermissionDeniedError) as e:
            raise Unauthorized(str(e)) from e
        except (openai.RateLimitError, openai.InternalServerError) as e:
            raise UpstreamUnavailable(str(e)) from e
        except openai.APIStatusError as e:
            raise UpstreamRejected(str(e)) from e
        except openai.APIResponseValidationError as e:
            raise MalformedUpstreamResponse(str(e)) from e
        except openai.APIError as e:
            raise UpstreamRejected(str(e)) from e
        finally:
            await client.close()

        if not completion.choices:
            raise MalformedUpstreamResponse(f"Empty choices from {self.adapter_kind}")
        message = completion.choices[0].message
        if message is None:
            raise MalformedUpstreamResponse(f"No message in {self.adapter_kind} response")
        return as_text(message.content)


def openai_generator(system_prompt: str, base_url: str | None, **kwargs: Any) -> OpenAICompatibleGenerator:
    return OpenAICompatibleGenerator("openai", system_prompt=system_prompt, base_url=base_url, **kwargs)


def deepseek_generator(system_prompt: str, base_url: str, **kwargs: Any) -> OpenAICompatibleGenerator:
    return OpenAICompatibleGenerator("deepseek", system_prompt=system_prompt, base_url=base_url, **kwargs)


def perplexity_generator(system_prompt: str, base_url: str, **kwargs: Any) -> OpenAICompatibleGenerator:
    return OpenAICompatibleGenerator(
        "perplexity",
        system_prompt=system_prompt,
        base_url=base_url,
        build_messages=perplexity_messages,
        **kwargs,
    )
