"""Podcast-style audio feedback for evaluated agents.

Modules:
    voices: Voice styles and their backend voice profiles
    synthesizer: Script rendering and text-to-speech synthesis
"""

from src.auditor.podcast.synthesizer import (
    PodcastAudio,
    PodcastSynthesisError,
    PodcastSynthesizer,
    build_podcast_script,
    create_tts_model,
)
from src.auditor.podcast.voices import VOICE_PROFILES, VoiceProfile, VoiceStyle, profile_for

__all__ = [
    "PodcastAudio",
    "PodcastSynthesisError",
    "PodcastSynthesizer",
    "build_podcast_script",
    "create_tts_model",
    "VOICE_PROFILES",
    "VoiceProfile",
    "VoiceStyle",
    "profile_for",
]
