"""Tests for podcast feedback synthesis.

Tests cover:
- Voice style to backend voice mapping
- Script rendering (single host, dialogue, NCG)
- PodcastAudio PCM helpers and WAV export
- PodcastSynthesizer speech config, audio decoding and empty output
"""

from __future__ import annotations

import base64
import io
import wave
from unittest.mock import AsyncMock, MagicMock

import pytest
from langchain_core.messages import AIMessage

from src.auditor.podcast.synthesizer import (
    PodcastAudio,
    PodcastSynthesisError,
    PodcastSynthesizer,
    build_podcast_script,
)
from src.auditor.podcast.voices import VOICE_PROFILES, VoiceStyle, profile_for
from src.common.scorecard.results import STATUS_NCG, AnalysisResult, CriterionScore


# =============================================================================
# Fixtures
# =============================================================================


def make_result(ncg: bool = False) -> AnalysisResult:
    """Single-criterion result worth 88 points (0 when NCG)."""
    return AnalysisResult(
        evaluation_status=STATUS_NCG if ncg else "Aprovado",
        total_score=0 if ncg else 88,
        reason_for_call="Plan upgrade",
        criteria_scores=[
            CriterionScore(
                criterion_id="A",
                status="CONFORME",
                points_earned=88,
                max_points=100,
                observation="Clear offer.",
            )
        ],
        summary="Upgrade sold.",
        system_ready_text="Upgrade done.",
        operator_feedback="Excelente sondagem inicial.",
        is_ncg_detected=ncg,
    )


@pytest.fixture
def pcm() -> bytes:
    """One second of silence: 24000 frames of 2 bytes."""
    return b"\x00\x00" * 24_000


@pytest.fixture
def mock_llm(pcm: bytes) -> MagicMock:
    """TTS chat model returning raw PCM bytes."""
    llm = MagicMock()
    llm.ainvoke = AsyncMock(return_value=AIMessage(content="", additional_kwargs={"audio": pcm}))
    return llm


# =============================================================================
# Voice Tests
# =============================================================================


class TestVoices:
    """Tests for voice style profiles."""

    def test_every_style_has_a_profile(self) -> None:
        """Test that the style set is fully mapped."""
        assert set(VOICE_PROFILES) == set(VoiceStyle)

    def test_backend_voices(self) -> None:
        """Test the prebuilt voice ids."""
        assert [VOICE_PROFILES[s].voice_name for s in VoiceStyle] == [
            "Puck", "Charon", "Kore", "Fenrir", "Zephyr",
        ]

    def test_profile_for_accepts_values(self) -> None:
        """Test lookup by enum value."""
        assert profile_for("calm") is VOICE_PROFILES[VoiceStyle.CALM]

    def test_profile_for_unknown(self) -> None:
        """Test that unknown styles are rejected."""
        with pytest.raises(ValueError):
            profile_for("whisper")


# =============================================================================
# Script Tests
# =============================================================================


class TestBuildPodcastScript:
    """Tests for build_podcast_script."""

    def test_single_host(self) -> None:
        """Test the single-host script."""
        script = build_podcast_script(make_result(), "Ana", "Carlos", VoiceStyle.FIRM)
        assert script.startswith(VOICE_PROFILES[VoiceStyle.FIRM].delivery)
        assert "Ana" in script
        assert "Carlos" in script
        assert "88 pontos" in script
        assert "Excelente sondagem inicial." in script

    def test_blank_monitor_falls_back(self) -> None:
        """Test the reviewer placeholder."""
        script = build_podcast_script(make_result(), "Ana", "  ")
        assert "auditado por Auditor" in script

    def test_ncg_verdict(self) -> None:
        """Test that an NCG result is announced as a zero."""
        script = build_podcast_script(make_result(ncg=True), "Ana", "Carlos")
        assert "tolerância zero" in script
        assert "88 pontos" not in script

    def test_dialogue(self) -> None:
        """Test the two-speaker script."""
        script = build_podcast_script(
            make_result(), "Ana", "Carlos", VoiceStyle.ENERGETIC, VoiceStyle.CALM
        )
        assert "Apresentador:" in script
        assert "Comentarista:" in script


# =============================================================================
# Audio Tests
# =============================================================================


class TestPodcastAudio:
    """Tests for PodcastAudio."""

    def test_duration(self, pcm: bytes) -> None:
        """Test duration from 24 kHz mono 16-bit samples."""
        audio = PodcastAudio(data_base64=base64.b64encode(pcm).decode())
        assert audio.pcm_bytes() == pcm
        assert audio.duration_seconds == pytest.approx(1.0)

    def test_to_wav(self, pcm: bytes) -> None:
        """Test the WAV container parameters."""
        audio = PodcastAudio(data_base64=base64.b64encode(pcm).decode())
        with wave.open(io.BytesIO(audio.to_wav()), "rb") as wav:
            assert wav.getnchannels() == 1
            assert wav.getsampwidth() == 2
            assert wav.getframerate() == 24_000
            assert wav.getnframes() == 24_000


# =============================================================================
# Synthesizer Tests
# =============================================================================


class TestPodcastSynthesizer:
    """Tests for PodcastSynthesizer."""

    @pytest.mark.asyncio
    async def test_synthesize_bytes(self, mock_llm: MagicMock, pcm: bytes) -> None:
        """Test that raw audio bytes are base64 encoded."""
        audio = await PodcastSynthesizer(mock_llm).synthesize(make_result(), "Ana", "Carlos")
        assert audio.pcm_bytes() == pcm

    @pytest.mark.asyncio
    async def test_synthesize_base64_string(self, mock_llm: MagicMock, pcm: bytes) -> None:
        """Test that base64 audio is kept as is."""
        encoded = base64.b64encode(pcm).decode()
        mock_llm.ainvoke.return_value = AIMessage(content="", additional_kwargs={"audio": encoded})
        audio = await PodcastSynthesizer(mock_llm).synthesize(make_result(), "Ana", "Carlos")
        assert audio.data_base64 == encoded

    @pytest.mark.asyncio
    async def test_single_voice_config(self, mock_llm: MagicMock) -> None:
        """Test the prebuilt voice sent for one host."""
        await PodcastSynthesizer(mock_llm).synthesize(
            make_result(), "Ana", "Carlos", VoiceStyle.WARM
        )
        config = mock_llm.ainvoke.call_args.kwargs["generation_config"]["speech_config"]
        assert config == {"voice_config": {"prebuilt_voice_config": {"voice_name": "Fenrir"}}}

    @pytest.mark.asyncio
    async def test_multi_speaker_config(self, mock_llm: MagicMock) -> None:
        """Test the speaker mapping sent for a dialogue."""
        await PodcastSynthesizer(mock_llm).synthesize(
            make_result(), "Ana", "Carlos", VoiceStyle.ENERGETIC, VoiceStyle.BRIGHT
        )
        config = mock_llm.ainvoke.call_args.kwargs["generation_config"]["speech_config"]
        speakers = config["multi_speaker_voice_config"]["speaker_voice_configs"]
        assert [s["speaker"] for s in speakers] == ["Apresentador", "Comentarista"]
        assert speakers[1]["voice_config"]["prebuilt_voice_config"]["voice_name"] == "Zephyr"

    @pytest.mark.asyncio
    async def test_no_audio(self, mock_llm: MagicMock) -> None:
        """Test that an empty response raises."""
        mock_llm.ainvoke.return_value = AIMessage(content="")
        with pytest.raises(PodcastSynthesisError, match="no audio"):
            await PodcastSynthesizer(mock_llm).synthesize(make_result(), "Ana", "Carlos")
