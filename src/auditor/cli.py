"""Command-line entry point for the QA scoring engine.

Usage:
    python -m src.auditor.cli evaluate call.txt --agent-name Ana \\
        --operation Vendas --monitor-id M01 --rigor EXPERT
    python -m src.auditor.cli evaluate - --audio call.mp3 --agent-name Ana ...
    python -m src.auditor.cli stats
    python -m src.auditor.cli rubric
    python -m src.auditor.cli ask "Como pontuar a sondagem?"

Configuration flags (``--data-dir``, ``--standard-model``, ...) are accepted
after the subcommand and also read from ``QA_*`` environment variables.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import mimetypes
import sys
from pathlib import Path
from typing import Sequence

from src.auditor.analytics.aggregation import compute_statistics
from src.auditor.consultant import QualityConsultant
from src.auditor.core.llm_config import LLMFactory, RigorModelSelector
from src.auditor.evaluation.auditor import InteractionAuditor
from src.auditor.evaluation.request import (
    AudioPayload,
    EvaluationRequestBuilder,
    InteractionMetadata,
)
from src.auditor.podcast.synthesizer import PodcastSynthesizer, create_tts_model
from src.auditor.podcast.voices import VoiceStyle
from src.auditor.store.state import JsonFileStorage, StateRepository
from src.common.scorecard.config import ScorecardConfig, validate_config
from src.common.scorecard.errors import ScorecardError
from src.common.scorecard.results import ALL_RIGOR_LEVELS
from src.common.scorecard.rubric import (
    EXPECTED_TOTAL_WEIGHT,
    group_by_category,
    is_balanced,
    total_weight,
)


logger = logging.getLogger(__name__)


def _create_parser() -> argparse.ArgumentParser:
    """Create the subcommand parser; every subcommand accepts config flags."""
    config_parser = ScorecardConfig._create_argument_parser()

    parser = argparse.ArgumentParser(
        prog="qa-auditor",
        description="Score call-center interactions against a QA scorecard.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    evaluate = commands.add_parser(
        "evaluate", parents=[config_parser], help="Evaluate one interaction"
    )
    evaluate.add_argument("transcript", help="Transcript file, or '-' for stdin")
    evaluate.add_argument("--audio", type=Path, default=None, help="Audio recording file")
    evaluate.add_argument("--audio-mime", default=None, help="Audio media type (guessed if omitted)")
    evaluate.add_argument("--agent-name", default="", dest="agent_name")
    evaluate.add_argument("--operation", default="")
    evaluate.add_argument("--monitor-id", default="", dest="monitor_id")
    evaluate.add_argument("--monitor-name", default="", dest="monitor_name")
    evaluate.add_argument("--audit-date", default=None, dest="audit_date")
    evaluate.add_argument("--rigor", default="MEDIUM", choices=ALL_RIGOR_LEVELS)
    evaluate.add_argument(
        "--podcast", type=Path, default=None, help="Write podcast feedback to this WAV file"
    )
    evaluate.add_argument(
        "--voice",
        default=VoiceStyle.ENERGETIC.value,
        choices=[style.value for style in VoiceStyle],
    )

    commands.add_parser("stats", parents=[config_parser], help="Print aggregate statistics")
    commands.add_parser("rubric", parents=[config_parser], help="Print the rubric balance report")

    ask = commands.add_parser("ask", parents=[config_parser], help="Ask the QA consultant")
    ask.add_argument("question")

    return parser


def _read_transcript(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def _read_audio(path: Path | None, mime_type: str | None) -> AudioPayload | None:
    if path is None:
        return None
    guessed, _ = mimetypes.guess_type(path.name)
    return AudioPayload(data=path.read_bytes(), mime_type=mime_type or guessed or "audio/mpeg")


async def _run_evaluate(args: argparse.Namespace, config: ScorecardConfig) -> int:
    repository = StateRepository(JsonFileStorage(config.data_dir))
    state = repository.load()

    metadata_fields = {
        "agent_name": args.agent_name,
        "operation": args.operation,
        "monitor_id": args.monitor_id,
        "monitor_name": args.monitor_name,
        "rigor": args.rigor,
    }
    if args.audit_date:
        metadata_fields["audit_date"] = args.audit_date

    auditor = InteractionAuditor(
        RigorModelSelector(config.standard_model, config.expert_model, config.temperature),
        repository.interaction_store(state),
        EvaluationRequestBuilder(
            max_transcript_chars=config.max_transcript_chars,
            max_rubric_chars=config.max_rubric_chars,
        ),
    )
    outcome = await auditor.evaluate(
        _read_transcript(args.transcript),
        state.rubric,
        InteractionMetadata(**metadata_fields),
        _read_audio(args.audio, args.audio_mime),
    )
    print(outcome.result.model_dump_json(by_alias=True, indent=2))

    if args.podcast is not None:
        synthesizer = PodcastSynthesizer(create_tts_model(config.tts_model))
        audio = await synthesizer.synthesize(
            outcome.result,
            args.agent_name,
            args.monitor_name,
            VoiceStyle(args.voice),
        )
        args.podcast.write_bytes(audio.to_wav())
        logger.info("Wrote podcast to %s", args.podcast)
    return 0


def _run_stats(config: ScorecardConfig) -> int:
    state = StateRepository(JsonFileStorage(config.data_dir)).load()
    stats = compute_statistics(state.interactions, state.rubric)
    print(stats.model_dump_json(indent=2))
    return 0


def _run_rubric(config: ScorecardConfig) -> int:
    rubric = StateRepository(JsonFileStorage(config.data_dir)).load().rubric
    report = {
        "totalWeight": total_weight(rubric),
        "expectedTotal": EXPECTED_TOTAL_WEIGHT,
        "balanced": is_balanced(rubric),
        "categories": {
            category: sum(c.weight for c in criteria)
            for category, criteria in group_by_category(rubric).items()
        },
        "zeroToleranceRules": [rule.id for rule in rubric.zero_tolerance],
    }
    print(json.dumps(report, ensure_ascii=False, indent=2))
    return 0


async def _run_ask(args: argparse.Namespace, config: ScorecardConfig) -> int:
    rubric = StateRepository(JsonFileStorage(config.data_dir)).load().rubric
    llm = LLMFactory.create(config.consultant_model, temperature=config.consultant_temperature)
    print(await QualityConsultant(llm).ask(args.question, rubric))
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Parse arguments, configure logging, and run the chosen subcommand."""
    args = _create_parser().parse_args(argv)
    config = ScorecardConfig.from_cli_args(argv)

    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    for warning in validate_config(config):
        logger.warning("Config: %s", warning)

    try:
        if args.command == "evaluate":
            return asyncio.run(_run_evaluate(args, config))
        if args.command == "stats":
            return _run_stats(config)
        if args.command == "rubric":
            return _run_rubric(config)
        return asyncio.run(_run_ask(args, config))
    except ScorecardError as e:
        logger.error("%s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
