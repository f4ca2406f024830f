"""Backend adapters producing continuations, one per adapter kind."""

from .base import TextGenerator
from .registry import GeneratorRegistry, build_default_registry

__all__ = [
    "GeneratorRegistry",
    "TextGenerator",
    "build_default_registry",
]
