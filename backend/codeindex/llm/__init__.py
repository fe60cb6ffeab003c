"""Language-model helpers: generation client, contextualizer, query expansion."""

from .client import LLMConfig, LLMResponse, TextGenerator, OpenAICompatibleClient, make_text_generator
from .contextualize import Contextualizer
from .query_expand import expand_query

__all__ = [
    "LLMConfig",
    "LLMResponse",
    "TextGenerator",
    "OpenAICompatibleClient",
    "make_text_generator",
    "Contextualizer",
    "expand_query",
]
