"""Podcast-style audio feedback from an evaluation result.

The synthesizer writes a short script around the result's score and
operator feedback, then asks a text-to-speech chat model to voice it with one
host, or two hosts when a co-host style is given. The backend returns raw
PCM: 24 kHz, mono, 16-bit signed little-endian samples.

Classes:
    PodcastAudio: Base64 PCM with its fixed format, convertible to WAV.
    PodcastSynthesizer: Builds the script and calls the TTS model.
    PodcastSynthesisError: The backend returned no audio.

Functions:
    build_podcast_script: Render the script for one result.
    create_tts_model: Build a Gemini TTS chat model.
"""

from __future__ import annotations

import base64
import io
import logging
import wave
from dataclasses import dataclass
from typing import Any

from langchain_core.language_models.chat_models import BaseChatModel

from src.auditor.podcast.voices import VoiceStyle, profile_for
from src.common.scorecard.errors import ScorecardError
from src.common.scorecard.results import AnalysisResult


logger = logging.getLogger(__name__)


SAMPLE_RATE = 24_000
CHANNELS = 1
SAMPLE_WIDTH = 2  # bytes, 16-bit signed

HOST_SPEAKER = "Apresentador"
COHOST_SPEAKER = "Comentarista"


class PodcastSynthesisError(ScorecardError):
    """Raised when the speech backend returns no audio."""

    pass


@dataclass(frozen=True)
class PodcastAudio:
    """Synthesized podcast audio.

    Attributes:
        data_base64: Base64-encoded raw PCM.
        sample_rate: Samples per second (always 24000).
        channels: Channel count (always 1).
        sample_width: Bytes per sample (always 2).
    """

    data_base64: str
    sample_rate: int = SAMPLE_RATE
    channels: int = CHANNELS
    sample_width: int = SAMPLE_WIDTH

    def pcm_bytes(self) -> bytes:
        """Return the decoded PCM samples."""
        return base64.b64decode(self.data_base64)

    @property
    def duration_seconds(self) -> float:
        """Return the audio duration in seconds."""
        frame_size = self.channels * self.sample_width
        return len(self.pcm_bytes()) / frame_size / self.sample_rate

    def to_wav(self) -> bytes:
        """Wrap the PCM samples in a WAV container."""
        buffer = io.BytesIO()
        with wave.open(buffer, "wb") as wav:
            wav.setnchannels(self.channels)
            wav.setsampwidth(self.sample_width)
            wav.setframerate(self.sample_rate)
            wav.writeframes(self.pcm_bytes())
        return buffer.getvalue()


def build_podcast_script(
    result: AnalysisResult,
    agent_name: str,
    monitor_name: str,
    style: VoiceStyle = VoiceStyle.ENERGETIC,
    co_host_style: VoiceStyle | None = None,
) -> str:
    """Render the podcast script for one evaluation result.

    Args:
        result: The validated evaluation.
        agent_name: Evaluated agent.
        monitor_name: Reviewer name (falls back to "Auditor").
        style: Host voice style.
        co_host_style: Optional second voice; turns the script into a dialogue.

    Returns:
        The script text, starting with delivery instructions.
    """
    monitor = monitor_name.strip() or "Auditor"
    host = profile_for(style)

    if result.is_ncg_detected:
        verdict = "Tivemos uma falha grave de tolerância zero, então a nota final é zero."
    else:
        verdict = f"A nota final foi {result.total_score} pontos."

    if co_host_style is None:
        return (
            f"{host.delivery}\n\n"
            f"Fala, pessoal! Vamos analisar o atendimento de {agent_name}, "
            f"auditado por {monitor}. {verdict} "
            f"Destaque: {result.operator_feedback}"
        )

    co_host = profile_for(co_host_style)
    return (
        f"{HOST_SPEAKER}: {host.delivery} {COHOST_SPEAKER}: {co_host.delivery}\n\n"
        f"{HOST_SPEAKER}: Fala, pessoal! Hoje vamos analisar o atendimento de "
        f"{agent_name}, auditado por {monitor}.\n"
        f"{COHOST_SPEAKER}: {verdict}\n"
        f"{HOST_SPEAKER}: E qual foi o principal destaque?\n"
        f"{COHOST_SPEAKER}: {result.operator_feedback}"
    )


def _speech_config(style: VoiceStyle, co_host_style: VoiceStyle | None) -> dict[str, Any]:
    host_voice = {"prebuilt_voice_config": {"voice_name": profile_for(style).voice_name}}
    if co_host_style is None:
        return {"voice_config": host_voice}
    co_host_voice = {
        "prebuilt_voice_config": {"voice_name": profile_for(co_host_style).voice_name}
    }
    return {
        "multi_speaker_voice_config": {
            "speaker_voice_configs": [
                {"speaker": HOST_SPEAKER, "voice_config": host_voice},
                {"speaker": COHOST_SPEAKER, "voice_config": co_host_voice},
            ]
        }
    }


def create_tts_model(model: str) -> BaseChatModel:
    """Build a Gemini chat model configured for audio output."""
    from langchain_google_genai import ChatGoogleGenerativeAI, Modality

    return ChatGoogleGenerativeAI(model=model, response_modalities=[Modality.AUDIO])


class PodcastSynthesizer:
    """Turns evaluation feedback into podcast audio.

    Attributes:
        llm: Chat model with audio output (see ``create_tts_model``).
    """

    def __init__(self, llm: BaseChatModel) -> None:
        """Initialize the synthesizer.

        Args:
            llm: Chat model with audio output.
        """
        self.llm = llm

    async def synthesize(
        self,
        result: AnalysisResult,
        agent_name: str,
        monitor_name: str,
        style: VoiceStyle = VoiceStyle.ENERGETIC,
        co_host_style: VoiceStyle | None = None,
    ) -> PodcastAudio:
        """Synthesize podcast audio for a result.

        Raises:
            PodcastSynthesisError: If the backend returned no audio.
        """
        script = build_podcast_script(result, agent_name, monitor_name, style, co_host_style)
        response = await self.llm.ainvoke(
            script,
            generation_config={"speech_config": _speech_config(style, co_host_style)},
        )

        audio = response.additional_kwargs.get("audio")
        if not audio:
            raise PodcastSynthesisError(
                f"Speech backend returned no audio for agent '{agent_name}'"
            )
        if isinstance(audio, (bytes, bytearray)):
            data_base64 = base64.b64encode(bytes(audio)).decode("ascii")
        else:
            data_base64 = str(audio)

        podcast = PodcastAudio(data_base64=data_base64)
        logger.info(
            "Synthesized %.1fs podcast for agent '%s' (voice=%s)",
            podcast.duration_seconds,
            agent_name,
            profile_for(style).voice_name,
        )
        return podcast
