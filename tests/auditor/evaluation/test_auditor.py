"""Tests for InteractionAuditor orchestration.

Tests cover:
- Successful evaluation stores exactly one interaction
- Input errors raise before any model call
- Transport failures are wrapped and nothing is stored
- Malformed and incomplete replies are raised and nothing is stored
- Parser failures inside a real structured-output chain are malformed replies
- Rigor selects the model tier
- Rubric imbalance is surfaced, not fatal
- Concurrent evaluations land in completion order
"""

from __future__ import annotations

import asyncio
import json
from operator import itemgetter
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel
from langchain_core.messages import AIMessage
from langchain_core.output_parsers import JsonOutputParser
from langchain_core.runnables import Runnable, RunnableParallel, RunnablePassthrough

from src.auditor.evaluation.auditor import InteractionAuditor
from src.auditor.evaluation.request import AudioPayload, InteractionMetadata
from src.auditor.store.interaction_store import InteractionStore
from src.common.scorecard.errors import (
    IncompleteCoverageError,
    InsufficientInputError,
    MalformedResponseError,
    MissingMetadataError,
    OracleTransportError,
)
from src.common.scorecard.rubric import Criterion, Rubric


# =============================================================================
# Fixtures
# =============================================================================


def make_reply(a: int = 60, b: int = 10, total: int = 70, ncg: bool = False) -> dict[str, Any]:
    """Raw oracle reply for the A/B rubric."""
    return {
        "evaluationStatus": "Aprovado",
        "totalScore": total,
        "reasonForCall": "Billing question",
        "criteriaScores": [
            {"criterionId": "A", "status": "CONFORME", "pointsEarned": a, "observation": "Greeted."},
            {"criterionId": "B", "status": "NÃO CONFORME", "pointsEarned": b, "observation": "Abrupt."},
        ],
        "summary": "Invoice doubt.",
        "systemReadyText": "Invoice explained.",
        "operatorFeedback": "Close politely.",
        "isNcgDetected": ncg,
    }


def envelope(reply: dict[str, Any]) -> dict[str, Any]:
    """Wrap a reply the way a structured runnable with include_raw returns it."""
    return {
        "raw": AIMessage(content=json.dumps(reply)),
        "parsed": reply,
        "parsing_error": None,
    }


def structured_chain(*responses: str) -> Runnable:
    """Real include_raw chain over a fake chat model answering with responses."""
    parse = RunnablePassthrough.assign(
        parsed=itemgetter("raw") | JsonOutputParser(),
        parsing_error=lambda _: None,
    )
    keep_raw = RunnablePassthrough.assign(parsed=lambda _: None)
    model = FakeListChatModel(responses=list(responses))
    return RunnableParallel(raw=model) | parse.with_fallbacks(
        [keep_raw], exception_key="parsing_error"
    )


@pytest.fixture
def rubric() -> Rubric:
    """Balanced rubric: A worth 60, B worth 40."""
    return Rubric(
        criteria=(
            Criterion(id="A", category="Opening", name="Greeting", weight=60),
            Criterion(id="B", category="Closing", name="Farewell", weight=40),
        ),
    )


@pytest.fixture
def metadata() -> InteractionMetadata:
    """Complete metadata at MEDIUM rigor."""
    return InteractionMetadata(
        agent_name="Ana",
        operation="Vendas",
        monitor_id="M-7",
        audit_date="2025-03-01",
    )


@pytest.fixture
def structured_llm() -> MagicMock:
    """Structured-output runnable returning a consistent reply."""
    runnable = MagicMock()
    runnable.ainvoke = AsyncMock(return_value=envelope(make_reply()))
    return runnable


@pytest.fixture
def mock_llm(structured_llm: MagicMock) -> MagicMock:
    """Chat model whose with_structured_output returns structured_llm."""
    llm = MagicMock()
    llm.with_structured_output.return_value = structured_llm
    return llm


@pytest.fixture
def selector(mock_llm: MagicMock) -> MagicMock:
    """Rigor selector always returning mock_llm."""
    selector = MagicMock()
    selector.llm_for.return_value = mock_llm
    return selector


@pytest.fixture
def store() -> InteractionStore:
    """Empty interaction store."""
    return InteractionStore()


@pytest.fixture
def auditor(selector: MagicMock, store: InteractionStore) -> InteractionAuditor:
    """Auditor wired to the mocks."""
    return InteractionAuditor(selector, store)


# =============================================================================
# Success Tests
# =============================================================================


class TestEvaluate:
    """Tests for a successful evaluate()."""

    @pytest.mark.asyncio
    async def test_stores_result(
        self,
        auditor: InteractionAuditor,
        store: InteractionStore,
        rubric: Rubric,
        metadata: InteractionMetadata,
    ) -> None:
        """Test that a valid reply is stored once."""
        outcome = await auditor.evaluate("Agente: Bom dia", rubric, metadata)

        assert outcome.result.total_score == 70
        assert outcome.result is outcome.interaction.result
        assert outcome.rubric_warning is None
        assert len(store) == 1
        stored = store.all()[0]
        assert stored is outcome.interaction
        assert stored.agent_name == "Ana"
        assert stored.date == "2025-03-01"
        assert stored.transcript == "Agente: Bom dia"

    @pytest.mark.asyncio
    async def test_sends_schema_and_messages(
        self,
        auditor: InteractionAuditor,
        mock_llm: MagicMock,
        structured_llm: MagicMock,
        rubric: Rubric,
        metadata: InteractionMetadata,
    ) -> None:
        """Test that the structured schema and two messages are sent."""
        await auditor.evaluate("Agente: Bom dia", rubric, metadata)

        schema = mock_llm.with_structured_output.call_args.args[0]
        assert schema["title"] == "AnalysisResult"
        assert mock_llm.with_structured_output.call_args.kwargs["include_raw"] is True
        messages = structured_llm.ainvoke.call_args.args[0]
        assert len(messages) == 2
        assert "ID:[A]" in messages[0].content

    @pytest.mark.asyncio
    async def test_rigor_selects_model(
        self,
        auditor: InteractionAuditor,
        selector: MagicMock,
        rubric: Rubric,
    ) -> None:
        """Test that the request's rigor reaches the selector."""
        metadata = InteractionMetadata(
            agent_name="Ana", operation="Vendas", monitor_id="M-7", rigor="EXPERT"
        )
        outcome = await auditor.evaluate("Agente: Bom dia", rubric, metadata)
        selector.llm_for.assert_called_once_with("EXPERT")
        assert outcome.result.rigor_applied == "EXPERT"

    @pytest.mark.asyncio
    async def test_audio_only(
        self,
        auditor: InteractionAuditor,
        structured_llm: MagicMock,
        rubric: Rubric,
        metadata: InteractionMetadata,
    ) -> None:
        """Test an audio-only evaluation sends a multi-part message."""
        audio = AudioPayload(data=b"ID3\x00", mime_type="audio/mpeg")
        await auditor.evaluate("", rubric, metadata, audio)
        human = structured_llm.ainvoke.call_args.args[0][1]
        assert [part["type"] for part in human.content] == ["text", "audio"]

    @pytest.mark.asyncio
    async def test_imbalance_surfaced(
        self,
        auditor: InteractionAuditor,
        structured_llm: MagicMock,
        metadata: InteractionMetadata,
    ) -> None:
        """Test that an unbalanced rubric still evaluates, with a warning."""
        rubric = Rubric(
            criteria=(
                Criterion(id="A", category="Opening", name="Greeting", weight=60),
                Criterion(id="B", category="Closing", name="Farewell", weight=30),
            ),
        )
        outcome = await auditor.evaluate("Agente: Bom dia", rubric, metadata)
        assert outcome.rubric_warning is not None
        assert outcome.rubric_warning.total_weight == 90
        assert outcome.result.total_score == 70

    @pytest.mark.asyncio
    async def test_ncg_override(
        self,
        auditor: InteractionAuditor,
        structured_llm: MagicMock,
        rubric: Rubric,
        metadata: InteractionMetadata,
    ) -> None:
        """Test that a detected NCG is stored with a zero score."""
        structured_llm.ainvoke.return_value = envelope(make_reply(a=60, b=25, total=85, ncg=True))
        outcome = await auditor.evaluate("Agente: Bom dia", rubric, metadata)
        assert outcome.result.total_score == 0
        assert outcome.result.is_ncg_detected


# =============================================================================
# Failure Tests
# =============================================================================


class TestEvaluateFailures:
    """Tests for evaluate() failure paths."""

    @pytest.mark.asyncio
    async def test_insufficient_input(
        self,
        auditor: InteractionAuditor,
        selector: MagicMock,
        store: InteractionStore,
        rubric: Rubric,
        metadata: InteractionMetadata,
    ) -> None:
        """Test that no model is called without input."""
        with pytest.raises(InsufficientInputError):
            await auditor.evaluate("   ", rubric, metadata)
        selector.llm_for.assert_not_called()
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_missing_metadata(
        self,
        auditor: InteractionAuditor,
        selector: MagicMock,
        rubric: Rubric,
    ) -> None:
        """Test that no model is called with blank metadata."""
        with pytest.raises(MissingMetadataError):
            await auditor.evaluate("Agente: Bom dia", rubric, InteractionMetadata(agent_name="Ana"))
        selector.llm_for.assert_not_called()

    @pytest.mark.asyncio
    async def test_transport_error(
        self,
        auditor: InteractionAuditor,
        structured_llm: MagicMock,
        store: InteractionStore,
        rubric: Rubric,
        metadata: InteractionMetadata,
    ) -> None:
        """Test that model failures are wrapped and nothing is stored."""
        cause = ConnectionError("network down")
        structured_llm.ainvoke.side_effect = cause
        with pytest.raises(OracleTransportError) as exc_info:
            await auditor.evaluate("Agente: Bom dia", rubric, metadata)
        assert exc_info.value.original_error is cause
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_unparseable_reply_is_malformed(
        self,
        auditor: InteractionAuditor,
        mock_llm: MagicMock,
        store: InteractionStore,
        rubric: Rubric,
        metadata: InteractionMetadata,
    ) -> None:
        """Test that prose from the model is a malformed reply, not a transport error."""
        mock_llm.with_structured_output.return_value = structured_chain(
            "Desculpe, não consigo avaliar."
        )
        with pytest.raises(MalformedResponseError, match="not valid JSON"):
            await auditor.evaluate("Agente: Bom dia", rubric, metadata)
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_parser_exception_is_malformed(
        self,
        auditor: InteractionAuditor,
        mock_llm: MagicMock,
        store: InteractionStore,
        rubric: Rubric,
        metadata: InteractionMetadata,
    ) -> None:
        """Test that a parser raising inside the runnable maps to MalformedResponseError."""
        mock_llm.with_structured_output.return_value = (
            FakeListChatModel(responses=["Desculpe, não consigo avaliar."]) | JsonOutputParser()
        )
        with pytest.raises(MalformedResponseError):
            await auditor.evaluate("Agente: Bom dia", rubric, metadata)
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_real_chain_success(
        self,
        auditor: InteractionAuditor,
        mock_llm: MagicMock,
        store: InteractionStore,
        rubric: Rubric,
        metadata: InteractionMetadata,
    ) -> None:
        """Test a JSON reply flowing through a real structured chain."""
        mock_llm.with_structured_output.return_value = structured_chain(json.dumps(make_reply()))
        outcome = await auditor.evaluate("Agente: Bom dia", rubric, metadata)
        assert outcome.result.total_score == 70
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_raw_reply_recovered_after_parsing_error(
        self,
        auditor: InteractionAuditor,
        structured_llm: MagicMock,
        rubric: Rubric,
        metadata: InteractionMetadata,
    ) -> None:
        """Test that fenced JSON in the raw message is still validated."""
        fenced = "```json\n" + json.dumps(make_reply()) + "\n```"
        structured_llm.ainvoke.return_value = {
            "raw": AIMessage(content=[{"type": "text", "text": fenced}]),
            "parsed": None,
            "parsing_error": ValueError("tool call missing"),
        }
        outcome = await auditor.evaluate("Agente: Bom dia", rubric, metadata)
        assert outcome.result.total_score == 70

    @pytest.mark.asyncio
    async def test_incomplete_reply(
        self,
        auditor: InteractionAuditor,
        structured_llm: MagicMock,
        store: InteractionStore,
        rubric: Rubric,
        metadata: InteractionMetadata,
    ) -> None:
        """Test that an incomplete reply is raised and nothing is stored."""
        partial = make_reply()
        partial["criteriaScores"] = partial["criteriaScores"][:1]
        structured_llm.ainvoke.return_value = envelope(partial)
        with pytest.raises(IncompleteCoverageError):
            await auditor.evaluate("Agente: Bom dia", rubric, metadata)
        assert len(store) == 0


# =============================================================================
# Concurrency Tests
# =============================================================================


class TestConcurrency:
    """Tests for independent concurrent evaluations."""

    @pytest.mark.asyncio
    async def test_completion_order(
        self,
        auditor: InteractionAuditor,
        structured_llm: MagicMock,
        store: InteractionStore,
        rubric: Rubric,
    ) -> None:
        """Test that the store head is the evaluation that finished last."""

        async def delayed(messages: list[Any]) -> dict[str, Any]:
            # The slow call belongs to the first agent
            delay = 0.05 if "ANÁLISE PARA: Slow" in messages[1].content else 0.0
            await asyncio.sleep(delay)
            return envelope(make_reply())

        structured_llm.ainvoke.side_effect = delayed

        def meta(name: str) -> InteractionMetadata:
            return InteractionMetadata(agent_name=name, operation="Vendas", monitor_id="M-7")

        await asyncio.gather(
            auditor.evaluate("Agente: Oi", rubric, meta("Slow")),
            auditor.evaluate("Agente: Oi", rubric, meta("Fast")),
        )

        assert [i.agent_name for i in store] == ["Slow", "Fast"]

    @pytest.mark.asyncio
    async def test_cancelled_evaluation_stores_nothing(
        self,
        auditor: InteractionAuditor,
        structured_llm: MagicMock,
        store: InteractionStore,
        rubric: Rubric,
        metadata: InteractionMetadata,
    ) -> None:
        """Test that cancelling an in-flight evaluation stores nothing."""
        started = asyncio.Event()

        async def hang(messages: list[Any]) -> dict[str, Any]:
            started.set()
            await asyncio.sleep(10)
            return envelope(make_reply())

        structured_llm.ainvoke.side_effect = hang
        task = asyncio.create_task(auditor.evaluate("Agente: Oi", rubric, metadata))
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert len(store) == 0
