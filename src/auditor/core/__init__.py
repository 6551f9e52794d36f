"""Core infrastructure for the auditor.

Modules:
    llm_config: Chat model factory and rigor-tier model selection
"""

from src.auditor.core.llm_config import (
    LLMConfig,
    LLMFactory,
    LLMProvider,
    RigorModelSelector,
    UnsupportedModelError,
)

__all__ = [
    "LLMConfig",
    "LLMFactory",
    "LLMProvider",
    "RigorModelSelector",
    "UnsupportedModelError",
]
