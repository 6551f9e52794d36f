"""Voice styles for podcast feedback.

A closed set of styles, each mapped to a backend prebuilt voice and a short
delivery instruction prepended to the script.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class VoiceStyle(Enum):
    """Delivery styles available for podcast feedback."""

    ENERGETIC = "energetic"
    CALM = "calm"
    FIRM = "firm"
    WARM = "warm"
    BRIGHT = "bright"


@dataclass(frozen=True)
class VoiceProfile:
    """Backend voice id plus delivery instructions for one style."""

    voice_name: str
    delivery: str


VOICE_PROFILES: dict[VoiceStyle, VoiceProfile] = {
    VoiceStyle.ENERGETIC: VoiceProfile(
        voice_name="Puck",
        delivery="Fale com energia e entusiasmo, em tom de podcast descontraído.",
    ),
    VoiceStyle.CALM: VoiceProfile(
        voice_name="Charon",
        delivery="Fale de forma calma, pausada e informativa.",
    ),
    VoiceStyle.FIRM: VoiceProfile(
        voice_name="Kore",
        delivery="Fale com firmeza e objetividade, sem perder a cordialidade.",
    ),
    VoiceStyle.WARM: VoiceProfile(
        voice_name="Fenrir",
        delivery="Fale de forma acolhedora e encorajadora.",
    ),
    VoiceStyle.BRIGHT: VoiceProfile(
        voice_name="Zephyr",
        delivery="Fale de forma leve, clara e otimista.",
    ),
}


def profile_for(style: VoiceStyle | str) -> VoiceProfile:
    """Return the voice profile for a style (enum member or its value).

    Raises:
        ValueError: If the style is not one of VoiceStyle.
    """
    return VOICE_PROFILES[VoiceStyle(style)]
