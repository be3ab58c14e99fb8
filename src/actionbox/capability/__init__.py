"""
Capability classification for tools no contract names.

Contracts can describe permitted and forbidden behavior in plain language.
A CapabilityClassifier maps a concrete tool onto those descriptions and the
CapabilityCache remembers the verdict per tool name.
"""

from actionbox.capability.cache import CapabilityCache
from actionbox.capability.classifier import (
    CapabilityClassifier,
    OllamaClassifier,
    build_classification_prompt,
    parse_classification,
)

__all__ = [
    "CapabilityCache",
    "CapabilityClassifier",
    "OllamaClassifier",
    "build_classification_prompt",
    "parse_classification",
]
