"""
Adapters package - External service connections.
Capability source adapters for ingredient, safety, expert and research APIs.
"""

from adapters.base import RateLimit, SourceAdapter
from adapters.http_sources import (
    CosmeticIngredientAdapter,
    PubChemAdapter,
    EPACompToxAdapter,
    OpenFDAAdapter,
    AnthropicAdapter,
    OpenAIAdapter,
    PubMedAdapter,
    ClinicalTrialsAdapter,
    build_default_adapters,
)

__all__ = [
    "RateLimit",
    "SourceAdapter",
    "CosmeticIngredientAdapter",
    "PubChemAdapter",
    "EPACompToxAdapter",
    "OpenFDAAdapter",
    "AnthropicAdapter",
    "OpenAIAdapter",
    "PubMedAdapter",
    "ClinicalTrialsAdapter",
    "build_default_adapters",
]
