import logging
from typing import Dict, Iterable, List

from ..errors import InvalidArgument
from ..settings import Settings
from .base import TextGenerator
from .cloudflare import CloudflareGenerator
from .gemini import GeminiGenerator
from .openai_compat import deepseek_generator, openai_generator, perplexity_generator

logger = logging.getLogger(__name__)


class GeneratorRegistry:
    """TextGenerator implementations keyed by adapter kind."""

    def __init__(self, generators: Iterable[TextGenerator] = ()) -> None:
        self._generators: Dict[str, TextGenerator] = {}
        for generator in generators:
            self.register(generator)

    def register(self, generator: TextGenerator) -> None:
        kind = generator.adapter_kind.strip().lower()
        if not kind:
            raise ValueError("TextGenerator must declare an adapter_kind")
        self._generators[kind] = generator

    def get(self, adapter_kind: str) -> TextGenerator:
        generator = self._generators.get(adapter_kind.strip().lower())
        if generator is None:
            raise InvalidArgument(f"Unsupported provider: {adapter_kind}")
        return generator

    def __contains__(self, adapter_kind: str) -> bool:
        return adapter_kind.strip().lower() in self._generators

    @property
    def kinds(self) -> List[str]:
        return sorted(self._generators)

    async def aclose(self) -> None:
        for generator in self._generators.values():
            await generator.aclose()


def build_default_registry(settings: Settings) -> GeneratorRegistry:
    """Register every built-in backend family using the given settings."""
    common = {
        "temperature": settings.temperature,
        "timeout_seconds": settings.request_timeout_seconds,
    }
    registry = GeneratorRegistry(
        [
            openai_generator(settings.system_prompt, settings.openai_base_url, **common),
            perplexity_generator(settings.system_prompt, settings.perplexity_base_url, **common),
            deepseek_generator(settings.system_prompt, settings.deepseek_base_url, **common),
            GeminiGenerator(
                system_prompt=settings.system_prompt,
                base_url=settings.gemini_base_url,
                **common,
            ),
            CloudflareGenerator(
                api_key=settings.cloudflare_api_key,
                account_id=settings.cloudflare_account_id,
                api_base=settings.cloudflare_api_base,
                timeout_seconds=settings.request_timeout_seconds,
            ),
        ]
    )
    logger.info("Registered text generators: %s", ", ".join(registry.kinds))
    return registry
