"""Configuration model for the QA scoring engine.

Configuration Sources (in order of precedence, highest first):
    1. Explicit constructor arguments
    2. CLI arguments (via from_cli_args)
    3. Environment variables (automatic via pydantic-settings)
    4. Default values

Environment Variables:
    Variables are prefixed with "QA_" and use the field name in
    SCREAMING_SNAKE_CASE, e.g.::

        QA_STANDARD_MODEL=gemini-2.5-flash
        QA_EXPERT_MODEL=gemini-2.5-pro
        QA_DATA_DIR=/var/lib/qa
        QA_MAX_TRANSCRIPT_CHARS=100000

Example:
    >>> from src.common.scorecard.config import ScorecardConfig
    >>> config = ScorecardConfig.from_cli_args(["--expert-model", "claude-sonnet-4-5"])
    >>> config.expert_model
    'claude-sonnet-4-5'
"""

from __future__ import annotations

import argparse
from typing import Any, Literal, Self, Sequence

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ScorecardConfig(BaseSettings):
    """Runtime configuration for evaluation, storage and synthesis.

    Attributes:
        standard_model: Model used for LIGHT and MEDIUM rigor evaluations.
        expert_model: Higher-capability model used for EXPERT rigor.
        consultant_model: Model answering scorecard questions.
        tts_model: Text-to-speech model for podcast feedback.
        temperature: Sampling temperature for evaluations.
        consultant_temperature: Sampling temperature for the consultant.
        data_dir: Directory holding the persisted state slots.
        max_transcript_chars: Transcript size cap before tail truncation.
        max_rubric_chars: Serialized rubric size cap before tail truncation.
        log_level: Logging level.
    """

    model_config = SettingsConfigDict(
        env_prefix="QA_",
        case_sensitive=False,
        extra="ignore",
    )

    standard_model: str = Field(
        default="gemini-2.5-flash",
        description="Model used for LIGHT and MEDIUM rigor evaluations",
    )
    expert_model: str = Field(
        default="gemini-2.5-pro",
        description="Model used for EXPERT rigor evaluations",
    )
    consultant_model: str = Field(
        default="gemini-2.5-flash",
        description="Model answering scorecard questions",
    )
    tts_model: str = Field(
        default="gemini-2.5-flash-preview-tts",
        description="Text-to-speech model for podcast feedback",
    )
    temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=2.0,
        description="Sampling temperature for evaluations",
    )
    consultant_temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="Sampling temperature for the consultant",
    )
    data_dir: str = Field(
        default=".qa_data",
        description="Directory holding the persisted state slots",
    )
    max_transcript_chars: int = Field(
        default=200_000,
        ge=1,
        description="Transcript size cap before tail truncation",
    )
    max_rubric_chars: int = Field(
        default=20_000,
        ge=1,
        description="Serialized rubric size cap before tail truncation",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> str:
        """Normalize log level to uppercase."""
        if isinstance(v, str):
            return v.upper()
        return v

    @classmethod
    def from_cli_args(
        cls,
        args: Sequence[str] | None = None,
        **overrides: Any,
    ) -> Self:
        """Create configuration from CLI arguments.

        Unknown arguments are ignored so the same argv can also be parsed by
        the command-line front end.

        Args:
            args: Command-line arguments to parse. If None, uses sys.argv[1:].
            **overrides: Values that override all other sources.

        Returns:
            A new configuration instance.
        """
        parser = cls._create_argument_parser()
        parsed, _ = parser.parse_known_args(args)
        cli_values = {
            k: v for k, v in cls._parsed_args_to_dict(parsed).items() if v is not None
        }
        return cls(**{**cli_values, **overrides})

    @classmethod
    def _create_argument_parser(cls) -> argparse.ArgumentParser:
        """Create the argument parser for configuration options."""
        parser = argparse.ArgumentParser(
            description="QA Scoring Engine Configuration",
            add_help=False,
        )
        parser.add_argument("--standard-model", type=str, default=None, dest="standard_model")
        parser.add_argument("--expert-model", type=str, default=None, dest="expert_model")
        parser.add_argument("--consultant-model", type=str, default=None, dest="consultant_model")
        parser.add_argument("--tts-model", type=str, default=None, dest="tts_model")
        parser.add_argument("--temperature", type=float, default=None)
        parser.add_argument(
            "--consultant-temperature", type=float, default=None, dest="consultant_temperature"
        )
        parser.add_argument("--data-dir", type=str, default=None, dest="data_dir")
        parser.add_argument(
            "--max-transcript-chars", type=int, default=None, dest="max_transcript_chars"
        )
        parser.add_argument(
            "--max-rubric-chars", type=int, default=None, dest="max_rubric_chars"
        )
        parser.add_argument(
            "--log-level",
            type=str,
            default=None,
            dest="log_level",
            choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        )
        return parser

    @classmethod
    def _parsed_args_to_dict(cls, parsed: argparse.Namespace) -> dict[str, Any]:
        """Convert parsed arguments to a dictionary."""
        return {
            "standard_model": parsed.standard_model,
            "expert_model": parsed.expert_model,
            "consultant_model": parsed.consultant_model,
            "tts_model": parsed.tts_model,
            "temperature": parsed.temperature,
            "consultant_temperature": parsed.consultant_temperature,
            "data_dir": parsed.data_dir,
            "max_transcript_chars": parsed.max_transcript_chars,
            "max_rubric_chars": parsed.max_rubric_chars,
            "log_level": parsed.log_level,
        }


def validate_config(config: ScorecardConfig) -> list[str]:
    """Validate a configuration and return any warnings.

    Args:
        config: The configuration to validate.

    Returns:
        A list of warning messages. Empty if no issues found.

    Example:
        >>> warnings = validate_config(ScorecardConfig(temperature=1.5))
        >>> "temperature" in warnings[0].lower()
        True
    """
    warnings: list[str] = []

    if config.temperature > 0.5:
        warnings.append(
            f"Evaluation temperature {config.temperature} is high; scores may "
            "vary between runs of the same transcript"
        )

    if config.standard_model == config.expert_model:
        warnings.append(
            "standard_model and expert_model are identical; EXPERT rigor will "
            "not select a higher-capability backend"
        )

    if config.max_rubric_chars < 1000:
        warnings.append(
            f"max_rubric_chars={config.max_rubric_chars} is very small; rubric "
            "descriptions will be truncated"
        )

    return warnings
