"""Provider abstraction for script generation and speech synthesis.

This module provides a registry pattern for managing providers,
allowing runtime selection of different backends by name.
"""

from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from .base import ScriptProvider, TTSProvider

from .elevenlabs import ElevenLabsProvider
from .grok import GrokScriptProvider

__all__ = ["ProviderRegistry"]


class ProviderRegistry:
    """Registry for managing script and speech providers.

    This class maintains a registry of available providers,
    allowing registration and retrieval by name.
    """

    _script_providers: ClassVar[dict[str, type["ScriptProvider"]]] = {}
    _tts_providers: ClassVar[dict[str, type["TTSProvider"]]] = {}

    @classmethod
    def register_script(cls, name: str, provider_class: type["ScriptProvider"]) -> None:
        """Register a script provider under ``name``."""
        cls._script_providers[name] = provider_class

    @classmethod
    def register_tts(cls, name: str, provider_class: type["TTSProvider"]) -> None:
        """Register a speech provider under ``name``."""
        cls._tts_providers[name] = provider_class

    @classmethod
    def get_script(cls, name: str) -> type["ScriptProvider"]:
        """Get a script provider class by name.

        Raises:
            KeyError: If provider name not found
        """
        return cls._lookup(cls._script_providers, name, "Script")

    @classmethod
    def get_tts(cls, name: str) -> type["TTSProvider"]:
        """Get a speech provider class by name.

        Raises:
            KeyError: If provider name not found
        """
        return cls._lookup(cls._tts_providers, name, "TTS")

    @staticmethod
    def _lookup(providers: dict, name: str, kind: str):  # type: ignore[no-untyped-def]
        if name not in providers:
            available = ", ".join(providers.keys()) if providers else "none"
            raise KeyError(
                f"{kind} provider '{name}' not found. Available providers: {available}"
            )
        return providers[name]


# Register providers
ProviderRegistry.register_script("grok", GrokScriptProvider)
ProviderRegistry.register_tts("elevenlabs", ElevenLabsProvider)
