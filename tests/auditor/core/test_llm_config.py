"""Tests for the LLM factory and rigor-tier model selection.

Tests cover:
- LLMProvider values
- UnsupportedModelError message
- LLMConfig validation
- LLMFactory.detect_provider() and provider-specific creation
- Temperature handling for reasoning models
- RigorModelSelector tier mapping and caching
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from src.auditor.core.llm_config import (
    LLMConfig,
    LLMFactory,
    LLMProvider,
    RigorModelSelector,
    UnsupportedModelError,
    _is_reasoning_model,
)


class TestLLMProvider:
    """Tests for the LLMProvider enum."""

    def test_provider_values(self) -> None:
        """Test that all expected provider values exist."""
        assert LLMProvider.GOOGLE.value == "google"
        assert LLMProvider.OPENAI.value == "openai"
        assert LLMProvider.ANTHROPIC.value == "anthropic"
        assert LLMProvider.OLLAMA.value == "ollama"
        assert len(LLMProvider) == 4


class TestUnsupportedModelError:
    """Tests for the UnsupportedModelError exception."""

    def test_message_lists_prefixes(self) -> None:
        """Test that the error names the model and the supported prefixes."""
        error = UnsupportedModelError("mistral-large")
        assert error.model == "mistral-large"
        assert "mistral-large" in str(error)
        assert "gemini-*" in str(error)
        assert "ollama/*" in str(error)


class TestIsReasoningModel:
    """Tests for the _is_reasoning_model helper."""

    @pytest.mark.parametrize("model", ["o1", "o1-mini", "o3-mini-2025-01-31"])
    def test_reasoning_models(self, model: str) -> None:
        """Test that o1/o3 models are detected."""
        assert _is_reasoning_model(model) is True

    @pytest.mark.parametrize("model", ["gpt-4o", "o1test", "gemini-2.5-pro"])
    def test_non_reasoning_models(self, model: str) -> None:
        """Test that other models are not flagged."""
        assert _is_reasoning_model(model) is False


class TestLLMConfig:
    """Tests for the LLMConfig dataclass."""

    def test_defaults(self) -> None:
        """Test the evaluation-friendly default temperature."""
        config = LLMConfig(model="gemini-2.5-flash")
        assert config.temperature == 0.1
        assert config.base_url is None
        assert config.extra_kwargs == {}

    def test_empty_model_raises(self) -> None:
        """Test that an empty model id is rejected."""
        with pytest.raises(ValueError, match="cannot be empty"):
            LLMConfig(model="")

    def test_temperature_out_of_range(self) -> None:
        """Test the temperature bounds."""
        with pytest.raises(ValueError, match="between 0.0 and 2.0"):
            LLMConfig(model="gpt-4o", temperature=2.5)


class TestDetectProvider:
    """Tests for LLMFactory.detect_provider()."""

    @pytest.mark.parametrize(
        ("model", "expected"),
        [
            ("gemini-2.5-flash", LLMProvider.GOOGLE),
            ("GEMINI-2.5-pro", LLMProvider.GOOGLE),
            ("gpt-4o", LLMProvider.OPENAI),
            ("o3-mini", LLMProvider.OPENAI),
            ("chatgpt-4o-latest", LLMProvider.OPENAI),
            ("claude-sonnet-4-5", LLMProvider.ANTHROPIC),
            ("ollama/llama3.2", LLMProvider.OLLAMA),
        ],
    )
    def test_detects_provider(self, model: str, expected: LLMProvider) -> None:
        """Test prefix dispatch."""
        assert LLMFactory.detect_provider(model) == expected

    @pytest.mark.parametrize("model", ["", "mistral-large", "llama3"])
    def test_unknown_model_raises(self, model: str) -> None:
        """Test that unrecognized ids raise."""
        with pytest.raises(UnsupportedModelError):
            LLMFactory.detect_provider(model)


class TestCreate:
    """Tests for provider-specific model creation."""

    @patch("src.auditor.core.llm_config.ChatGoogleGenerativeAI")
    def test_google(self, mock_cls: MagicMock) -> None:
        """Test Gemini model creation."""
        result = LLMFactory.create("gemini-2.5-pro", temperature=0.1)
        mock_cls.assert_called_once_with(model="gemini-2.5-pro", temperature=0.1)
        assert result is mock_cls.return_value

    @patch("src.auditor.core.llm_config.ChatOpenAI")
    def test_openai(self, mock_cls: MagicMock) -> None:
        """Test OpenAI model creation with a base URL."""
        LLMFactory.create("gpt-4o", temperature=0.2, base_url="http://localhost:8000/v1")
        mock_cls.assert_called_once_with(
            model="gpt-4o", temperature=0.2, base_url="http://localhost:8000/v1"
        )

    @patch("src.auditor.core.llm_config.ChatOpenAI")
    def test_openai_reasoning_model_drops_temperature(self, mock_cls: MagicMock) -> None:
        """Test that reasoning models are created without temperature."""
        LLMFactory.create("o3-mini", temperature=0.1)
        assert "temperature" not in mock_cls.call_args.kwargs

    @patch("src.auditor.core.llm_config.ChatAnthropic")
    def test_anthropic(self, mock_cls: MagicMock) -> None:
        """Test Anthropic model creation with extra kwargs."""
        LLMFactory.create("claude-sonnet-4-5", temperature=0.0, max_tokens=4096)
        mock_cls.assert_called_once_with(
            model="claude-sonnet-4-5", temperature=0.0, max_tokens=4096
        )

    @patch("src.auditor.core.llm_config.ChatOllama")
    def test_ollama_strips_prefix(self, mock_cls: MagicMock) -> None:
        """Test that the ollama/ prefix is removed."""
        LLMFactory.create("ollama/llama3.2", temperature=0.1)
        mock_cls.assert_called_once_with(model="llama3.2", temperature=0.1)

    def test_unsupported_model(self) -> None:
        """Test that creation fails for unknown ids."""
        with pytest.raises(UnsupportedModelError):
            LLMFactory.create("mistral-large")


class TestRigorModelSelector:
    """Tests for RigorModelSelector."""

    @pytest.fixture
    def selector(self) -> RigorModelSelector:
        """Selector with distinct standard and expert tiers."""
        return RigorModelSelector("gemini-2.5-flash", "gemini-2.5-pro", temperature=0.1)

    @pytest.mark.parametrize(
        ("rigor", "expected"),
        [
            ("LIGHT", "gemini-2.5-flash"),
            ("MEDIUM", "gemini-2.5-flash"),
            ("EXPERT", "gemini-2.5-pro"),
        ],
    )
    def test_model_for(self, selector: RigorModelSelector, rigor: str, expected: str) -> None:
        """Test that only EXPERT selects the higher tier."""
        assert selector.model_for(rigor) == expected  # type: ignore[arg-type]

    def test_unknown_rigor(self, selector: RigorModelSelector) -> None:
        """Test that an unknown rigor level is rejected."""
        with pytest.raises(ValueError, match="Unknown rigor level"):
            selector.model_for("EXTREME")  # type: ignore[arg-type]

    @patch("src.auditor.core.llm_config.ChatGoogleGenerativeAI")
    def test_llm_for_caches_per_model(
        self, mock_cls: MagicMock, selector: RigorModelSelector
    ) -> None:
        """Test that LIGHT and MEDIUM share one cached model."""
        mock_cls.side_effect = lambda **kwargs: MagicMock(name=kwargs["model"])

        light = selector.llm_for("LIGHT")
        medium = selector.llm_for("MEDIUM")
        expert = selector.llm_for("EXPERT")

        assert light is medium
        assert expert is not light
        assert mock_cls.call_count == 2
