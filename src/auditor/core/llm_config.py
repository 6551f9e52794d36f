"""LLM factory and rigor-tier model selection.

The evaluation oracle, the QA consultant and the podcast synthesizer all talk
to LangChain chat models. This module turns a model identifier into a
configured chat model for the matching provider, and maps a rigor level to
the model tier that should run an evaluation.

Key Classes:
    LLMProvider: Enum of supported LLM providers.
    LLMConfig: Immutable parameters for one chat model.
    LLMFactory: Builds chat models from identifiers.
    RigorModelSelector: Picks (and caches) the chat model for a rigor level.
    UnsupportedModelError: Raised for unrecognized model identifiers.

Supported Model Prefixes:
    - Google: ``gemini-*`` (default backend)
    - OpenAI: ``gpt-*``, ``o1*``, ``o3*``, ``chatgpt-*``
    - Anthropic: ``claude-*``
    - Ollama: ``ollama/*`` (e.g., ``ollama/llama3.2``)

Example:
    >>> selector = RigorModelSelector("gemini-2.5-flash", "gemini-2.5-pro")
    >>> selector.model_for("EXPERT")
    'gemini-2.5-pro'
    >>> llm = selector.llm_for("MEDIUM")
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from langchain_anthropic import ChatAnthropic
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_ollama import ChatOllama
from langchain_openai import ChatOpenAI

from src.common.scorecard.results import ALL_RIGOR_LEVELS, RigorLevel

logger = logging.getLogger(__name__)


class LLMProvider(Enum):
    """Supported LLM providers."""

    GOOGLE = "google"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    OLLAMA = "ollama"


class UnsupportedModelError(Exception):
    """Raised when a model identifier matches no known provider.

    Attributes:
        model: The unrecognized model identifier.
    """

    def __init__(self, model: str) -> None:
        """Initialize the exception.

        Args:
            model: The unrecognized model identifier.
        """
        self.model = model
        prefixes = ", ".join(f"{p}*" for p in LLMFactory.get_supported_prefixes())
        super().__init__(
            f"Unsupported model identifier: '{model}'. Supported prefixes: {prefixes}"
        )


# OpenAI reasoning models reject the temperature parameter
_OPENAI_REASONING_MODELS = frozenset({"o1", "o1-mini", "o1-preview", "o3", "o3-mini"})


def _is_reasoning_model(model: str) -> bool:
    """Return True for OpenAI o1/o3 family models (with or without a suffix)."""
    return any(
        model == name or model.startswith(f"{name}-") for name in _OPENAI_REASONING_MODELS
    )


@dataclass(frozen=True)
class LLMConfig:
    """Parameters for creating one chat model.

    Attributes:
        model: Model identifier (e.g. "gemini-2.5-pro", "gpt-4o").
        temperature: Sampling temperature. Ignored by OpenAI reasoning models.
        base_url: Optional endpoint override (OpenAI-compatible APIs, Ollama).
        extra_kwargs: Provider-specific constructor arguments, passed through.
    """

    model: str
    temperature: float = 0.1
    base_url: str | None = None
    extra_kwargs: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if not self.model:
            raise ValueError("Model identifier cannot be empty")
        if not 0.0 <= self.temperature <= 2.0:
            raise ValueError(
                f"Temperature must be between 0.0 and 2.0, got {self.temperature}"
            )


class LLMFactory:
    """Factory for LangChain chat models, dispatching on model prefix.

    Example:
        >>> LLMFactory.detect_provider("gemini-2.5-flash")
        <LLMProvider.GOOGLE: 'google'>
        >>> llm = LLMFactory.create("claude-sonnet-4-5", temperature=0.0)
    """

    _PREFIX_TO_PROVIDER: dict[str, LLMProvider] = {
        "gemini-": LLMProvider.GOOGLE,
        "gpt-": LLMProvider.OPENAI,
        "o1": LLMProvider.OPENAI,
        "o3": LLMProvider.OPENAI,
        "chatgpt-": LLMProvider.OPENAI,
        "claude-": LLMProvider.ANTHROPIC,
        "ollama/": LLMProvider.OLLAMA,
    }

    @classmethod
    def detect_provider(cls, model: str) -> LLMProvider:
        """Detect the provider of a model identifier.

        Args:
            model: Model identifier.

        Returns:
            The matching LLMProvider.

        Raises:
            UnsupportedModelError: If no prefix matches.
        """
        model_lower = (model or "").lower()
        if not model_lower:
            raise UnsupportedModelError(model)

        for prefix, provider in cls._PREFIX_TO_PROVIDER.items():
            if model_lower.startswith(prefix):
                return provider

        raise UnsupportedModelError(model)

    @classmethod
    def create(
        cls,
        model: str,
        temperature: float = 0.1,
        base_url: str | None = None,
        **extra_kwargs: Any,
    ) -> BaseChatModel:
        """Create a chat model from parameters.

        Args:
            model: Model identifier.
            temperature: Sampling temperature.
            base_url: Optional endpoint override.
            **extra_kwargs: Provider-specific arguments.

        Returns:
            Configured LangChain chat model.
        """
        config = LLMConfig(
            model=model,
            temperature=temperature,
            base_url=base_url,
            extra_kwargs=extra_kwargs,
        )
        return cls.create_from_config(config)

    @classmethod
    def create_from_config(cls, config: LLMConfig) -> BaseChatModel:
        """Create a chat model from an LLMConfig.

        Raises:
            UnsupportedModelError: If the model identifier is not recognized.
        """
        provider = cls.detect_provider(config.model)
        builders = {
            LLMProvider.GOOGLE: cls._create_google,
            LLMProvider.OPENAI: cls._create_openai,
            LLMProvider.ANTHROPIC: cls._create_anthropic,
            LLMProvider.OLLAMA: cls._create_ollama,
        }
        logger.debug("Creating %s model: %s", provider.value, config.model)
        return builders[provider](config)

    @classmethod
    def _create_google(cls, config: LLMConfig) -> ChatGoogleGenerativeAI:
        if config.base_url is not None:
            logger.debug(
                "Base URL ignored for Google model '%s'", config.model
            )
        return ChatGoogleGenerativeAI(
            model=config.model,
            temperature=config.temperature,
            **config.extra_kwargs,
        )

    @classmethod
    def _create_openai(cls, config: LLMConfig) -> ChatOpenAI:
        kwargs: dict[str, Any] = {"model": config.model, **config.extra_kwargs}
        # Reasoning models reject temperature
        if not _is_reasoning_model(config.model):
            kwargs["temperature"] = config.temperature
        if config.base_url is not None:
            kwargs["base_url"] = config.base_url
        return ChatOpenAI(**kwargs)

    @classmethod
    def _create_anthropic(cls, config: LLMConfig) -> ChatAnthropic:
        kwargs: dict[str, Any] = {
            "model": config.model,
            "temperature": config.temperature,
            **config.extra_kwargs,
        }
        if config.base_url is not None:
            kwargs["base_url"] = config.base_url
        return ChatAnthropic(**kwargs)

    @classmethod
    def _create_ollama(cls, config: LLMConfig) -> ChatOllama:
        # "ollama/llama3.2" -> "llama3.2"
        model_name = config.model[len("ollama/"):]
        kwargs: dict[str, Any] = {
            "model": model_name,
            "temperature": config.temperature,
            **config.extra_kwargs,
        }
        if config.base_url is not None:
            kwargs["base_url"] = config.base_url
        return ChatOllama(**kwargs)

    @classmethod
    def get_supported_prefixes(cls) -> list[str]:
        """Return all supported model prefixes."""
        return list(cls._PREFIX_TO_PROVIDER.keys())


class RigorModelSelector:
    """Maps a rigor level to the chat model that should run the evaluation.

    EXPERT rigor selects the higher-capability ``expert_model``; LIGHT and
    MEDIUM use ``standard_model``. One chat model is created lazily per model
    identifier and reused across evaluations.

    Attributes:
        standard_model: Model used for LIGHT and MEDIUM rigor.
        expert_model: Model used for EXPERT rigor.
        temperature: Sampling temperature passed to every model.
    """

    def __init__(
        self,
        standard_model: str,
        expert_model: str,
        temperature: float = 0.1,
    ) -> None:
        """Initialize the selector.

        Args:
            standard_model: Model used for LIGHT and MEDIUM rigor.
            expert_model: Model used for EXPERT rigor.
            temperature: Sampling temperature passed to every model.
        """
        self.standard_model = standard_model
        self.expert_model = expert_model
        self.temperature = temperature
        self._cache: dict[str, BaseChatModel] = {}

    def model_for(self, rigor: RigorLevel) -> str:
        """Return the model identifier for a rigor level.

        Raises:
            ValueError: If rigor is not LIGHT, MEDIUM or EXPERT.
        """
        if rigor not in ALL_RIGOR_LEVELS:
            raise ValueError(
                f"Unknown rigor level '{rigor}'; expected one of {ALL_RIGOR_LEVELS}"
            )
        return self.expert_model if rigor == "EXPERT" else self.standard_model

    def llm_for(self, rigor: RigorLevel) -> BaseChatModel:
        """Return the (cached) chat model for a rigor level."""
        model = self.model_for(rigor)
        if model not in self._cache:
            self._cache[model] = LLMFactory.create(model, temperature=self.temperature)
        return self._cache[model]
