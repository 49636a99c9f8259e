"""Abstract base classes for script and speech providers.

This module defines the interfaces the pipeline consumes, so that text
generation and speech synthesis backends can be swapped or faked in tests.
"""

from abc import ABC, abstractmethod

from ..tts.models import VoiceSettings


class ScriptProvider(ABC):
    """Abstract base class for text generators that write the spoken script."""

    @abstractmethod
    async def generate_script(
        self, goal: str, tone: str, context: dict[str, str]
    ) -> str:
        """Write a short script for the user's goal.

        Args:
            goal: The user's stated goal
            tone: Tone name (e.g. "gentle", "tough_love")
            context: Extra context such as time of day or a personal note

        Returns:
            Plain-text script ready for speech synthesis

        Raises:
            ProviderError: If generation fails
        """
        pass

    async def aclose(self) -> None:
        """Release network resources held by the provider. No-op by default."""
        pass


class TTSProvider(ABC):
    """Abstract base class for text-to-speech providers.

    All TTS providers must inherit from this class and implement
    the required methods for synthesizing speech and listing voices.

    Voice Dictionary Structure:
        Each voice returned by list_voices() should follow this structure:
        {
            "id": str,       # Unique identifier for the voice
            "name": str,     # Human-readable name for the voice
            "provider": str  # Name of the provider (e.g., "elevenlabs")
        }
    """

    @abstractmethod
    async def synthesize(
        self, text: str, voice: str, options: VoiceSettings | None = None
    ) -> bytes:
        """Convert text to audio bytes.

        Args:
            text: The text to convert to speech
            voice: Voice ID to use for synthesis
            options: Voice settings; provider defaults when None

        Returns:
            Audio data as bytes (MP3 format)

        Raises:
            ProviderError: If synthesis fails
        """
        pass

    @abstractmethod
    async def list_voices(self) -> list[dict]:
        """Return available voices for this provider.

        Raises:
            ProviderError: If voice listing fails
        """
        pass

    async def aclose(self) -> None:
        """Release network resources held by the provider. No-op by default."""
        pass
