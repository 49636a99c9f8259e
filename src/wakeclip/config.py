"""Configuration management for wakeclip.

Loads configuration from ~/.config/wakeclip/config.toml.
Priority chain: env vars > config file > built-in defaults.
"""

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path

from .errors import ConfigError

CONFIG_DIR = Path.home() / ".config" / "wakeclip"
CONFIG_PATH = CONFIG_DIR / "config.toml"

DEFAULT_CONFIG = """\
# wakeclip configuration

[script]
# Script generator: "grok" (x.ai chat completions)
provider = "grok"
model = "grok-beta"

# HTTP timeout for script requests, in seconds
timeout = 30.0

[tts]
# Speech synthesizer: "elevenlabs"
provider = "elevenlabs"
model = "eleven_monolingual_v1"

# Optional voice overrides per tone (ElevenLabs voice IDs)
# [tts.voices]
# gentle = "21m00Tcm4TlvDq8ikWAM"

[cache]
# Directory for cached audio (defaults to ~/.cache/wakeclip)
# dir = "/path/to/cache"

# Size ceiling for cached audio, in MB
max_size_mb = 150

# Clips older than this are expired
expiration_hours = 72

# API keys are read from environment variables, not this file:
#   XAI_API_KEY         - Grok script generation
#   ELEVENLABS_API_KEY  - ElevenLabs speech synthesis
"""


@dataclass(frozen=True)
class ScriptConfig:
    """Script generator configuration."""

    provider: str
    model: str
    timeout: float


@dataclass(frozen=True)
class TTSConfig:
    """Speech synthesizer configuration."""

    provider: str
    model: str
    voices: dict[str, str]


@dataclass(frozen=True)
class CacheConfig:
    """Audio cache configuration."""

    dir: Path | None
    max_size_mb: float
    expiration_hours: float


@dataclass(frozen=True)
class WakeclipConfig:
    """Top-level wakeclip configuration."""

    script: ScriptConfig
    tts: TTSConfig
    cache: CacheConfig


def generate_config(path: Path = CONFIG_PATH) -> Path:
    """Write the default config file to ``path``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(DEFAULT_CONFIG)
    return path


def _positive_float(value: object, name: str) -> float:
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be a number, got {value!r}") from None
    if number <= 0:
        raise ConfigError(f"{name} must be positive, got {number}")
    return number


def load_config(path: Path | None = None) -> WakeclipConfig:
    """Load configuration from a TOML file with env var overrides.

    A missing file yields the built-in defaults.

    Args:
        path: Config file to read (defaults to ~/.config/wakeclip/config.toml)

    Returns:
        Loaded and validated WakeclipConfig.

    Raises:
        ConfigError: If the file cannot be parsed or holds invalid values.
    """
    path = path or CONFIG_PATH

    try:
        if path.exists():
            with open(path, "rb") as f:
                data = tomllib.load(f)
        else:
            data = tomllib.loads(DEFAULT_CONFIG)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid config file {path}: {e}", e) from e

    script = data.get("script", {})
    tts = data.get("tts", {})
    cache = data.get("cache", {})

    voices = tts.get("voices", {})
    if not isinstance(voices, dict) or not all(
        isinstance(v, str) for v in voices.values()
    ):
        raise ConfigError("tts.voices must map tone names to voice IDs")

    # Env vars override config file values
    cache_dir = os.getenv("WAKECLIP_CACHE_DIR", cache.get("dir"))

    return WakeclipConfig(
        script=ScriptConfig(
            provider=os.getenv("WAKECLIP_SCRIPT_PROVIDER", script.get("provider", "grok")),
            model=os.getenv("WAKECLIP_SCRIPT_MODEL", script.get("model", "grok-beta")),
            timeout=_positive_float(script.get("timeout", 30.0), "script.timeout"),
        ),
        tts=TTSConfig(
            provider=os.getenv("WAKECLIP_TTS_PROVIDER", tts.get("provider", "elevenlabs")),
            model=os.getenv("WAKECLIP_TTS_MODEL", tts.get("model", "eleven_monolingual_v1")),
            voices=dict(voices),
        ),
        cache=CacheConfig(
            dir=Path(cache_dir).expanduser() if cache_dir else None,
            max_size_mb=_positive_float(
                os.getenv("WAKECLIP_CACHE_MAX_MB", cache.get("max_size_mb", 150)),
                "cache.max_size_mb",
            ),
            expiration_hours=_positive_float(
                os.getenv(
                    "WAKECLIP_CACHE_EXPIRATION_HOURS",
                    cache.get("expiration_hours", 72),
                ),
                "cache.expiration_hours",
            ),
        ),
    )
