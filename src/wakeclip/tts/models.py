"""Generation data models with validation."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class AlarmTone(str, Enum):
    """Delivery style requested by the user."""

    GENTLE = "gentle"
    ENERGETIC = "energetic"
    TOUGH_LOVE = "tough_love"
    STORYTELLER = "storyteller"

    @classmethod
    def parse(cls, value: "str | AlarmTone") -> "AlarmTone":
        """Parse a tone name, accepting "tough love" and mixed case."""
        if isinstance(value, AlarmTone):
            return value
        normalized = value.strip().lower().replace(" ", "_")
        try:
            return cls(normalized)
        except ValueError:
            valid = ", ".join(tone.value for tone in cls)
            raise ValueError(f"Unknown tone '{value}'. Valid tones: {valid}") from None


@dataclass
class VoiceSettings:
    """Voice generation settings.

    Args:
        stability: Voice stability (0.0-1.0)
        similarity_boost: Voice similarity boost (0.0-1.0)
        style: Voice style exaggeration (0.0-1.0)
        use_speaker_boost: Whether to use speaker boost
    """

    stability: float = 0.7
    similarity_boost: float = 0.75
    style: float = 0.5
    use_speaker_boost: bool = True

    def __post_init__(self) -> None:
        """Validate voice settings."""
        if not 0.0 <= self.stability <= 1.0:
            raise ValueError("stability must be between 0.0 and 1.0")
        if not 0.0 <= self.similarity_boost <= 1.0:
            raise ValueError("similarity_boost must be between 0.0 and 1.0")
        if not 0.0 <= self.style <= 1.0:
            raise ValueError("style must be between 0.0 and 1.0")

    def to_dict(self) -> dict:
        return {
            "stability": self.stability,
            "similarity_boost": self.similarity_boost,
            "style": self.style,
            "use_speaker_boost": self.use_speaker_boost,
        }


DEFAULT_VOICE_ID = "21m00Tcm4TlvDq8ikWAM"  # Rachel

# ElevenLabs premade voices per tone
TONE_VOICES: dict[AlarmTone, str] = {
    AlarmTone.GENTLE: "21m00Tcm4TlvDq8ikWAM",  # Rachel - calm, pleasant
    AlarmTone.ENERGETIC: "pNInz6obpgDQGcFmaJgB",  # Adam - energetic, confident
    AlarmTone.TOUGH_LOVE: "VR6AewLTigWG4xSOukaG",  # Arnold - firm
    AlarmTone.STORYTELLER: "CYw3kZ02Hs0563khs1Fj",  # Dave - narrative
}

TONE_VOICE_SETTINGS: dict[AlarmTone, VoiceSettings] = {
    AlarmTone.GENTLE: VoiceSettings(stability=0.75, similarity_boost=0.75, style=0.4),
    AlarmTone.ENERGETIC: VoiceSettings(stability=0.5, similarity_boost=0.8, style=0.8),
    AlarmTone.TOUGH_LOVE: VoiceSettings(stability=0.8, similarity_boost=0.9, style=0.6),
    AlarmTone.STORYTELLER: VoiceSettings(stability=0.7, similarity_boost=0.7, style=0.5),
}

DEFAULT_GOAL = "Wake up refreshed and ready for the day"


@dataclass
class GenerationRequest:
    """A request for one spoken clip.

    Args:
        request_id: Identifier of the request, part of the cache key
        user_goal: What the user wants to achieve
        tone: Delivery style
        scheduled_for: When the clip is needed (drives pre-generation)
        context: Free-form extra context, e.g. {"custom_note": "..."}
        voice_id: Explicit voice, overriding the tone's default voice
    """

    request_id: str
    user_goal: str
    tone: AlarmTone
    scheduled_for: datetime
    context: dict[str, str] = field(default_factory=dict)
    voice_id: str | None = None

    def __post_init__(self) -> None:
        """Validate request fields."""
        if not self.request_id or not self.request_id.strip():
            raise ValueError("request_id cannot be empty")
        if not self.user_goal or not self.user_goal.strip():
            raise ValueError("user_goal cannot be empty")
        self.tone = AlarmTone.parse(self.tone)

    @classmethod
    def default_for(
        cls, schedule_id: str, scheduled_for: datetime
    ) -> "GenerationRequest":
        """Build the fallback request for a scheduled event with no stated goal."""
        return cls(
            request_id=schedule_id,
            user_goal=DEFAULT_GOAL,
            tone=AlarmTone.GENTLE,
            scheduled_for=scheduled_for,
        )


@dataclass(frozen=True)
class GenerationResult:
    """Audio produced for a request, from cache or freshly generated."""

    audio_path: str
    text_content: str
    duration: float | None
    voice_id: str
    generated_at: datetime
    from_cache: bool


class GenerationStatus(Enum):
    """Progress of the most recent generation."""

    IDLE = "idle"
    GENERATING_TEXT = "generating_text"
    SYNTHESIZING_SPEECH = "synthesizing_speech"
    CACHING = "caching"
    COMPLETED = "completed"
    FAILED = "failed"
