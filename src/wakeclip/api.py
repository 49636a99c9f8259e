"""High-level API for wakeclip library usage."""

from .cache.manager import AudioCacheManager
from .config import WakeclipConfig, load_config
from .errors import ConfigError
from .providers import ProviderRegistry
from .tts.models import AlarmTone
from .tts.pipeline import AudioPipeline


def create_pipeline(config: WakeclipConfig | None = None) -> AudioPipeline:
    """Build an AudioPipeline wired from configuration.

    Args:
        config: Configuration to use (loaded from the config file if omitted)

    Returns:
        A pipeline with its own cache manager and provider instances

    Raises:
        ConfigError: If configuration is invalid
        ProviderAuthError: If a provider API key is missing
        KeyError: If a configured provider is not registered
        StorageError: If the cache index cannot be loaded
    """
    config = config or load_config()

    script_class = ProviderRegistry.get_script(config.script.provider)
    tts_class = ProviderRegistry.get_tts(config.tts.provider)

    try:
        voice_overrides = {
            AlarmTone.parse(tone): voice_id
            for tone, voice_id in config.tts.voices.items()
        }
    except ValueError as e:
        raise ConfigError(f"Invalid tts.voices entry: {e}", e) from e

    return AudioPipeline(
        script_provider=script_class(
            model=config.script.model, timeout=config.script.timeout
        ),
        tts_provider=tts_class(model_id=config.tts.model),
        cache=create_cache(config),
        voice_overrides=voice_overrides,
    )


def create_cache(config: WakeclipConfig | None = None) -> AudioCacheManager:
    """Build an AudioCacheManager from configuration.

    Raises:
        ConfigError: If configuration is invalid
        StorageError: If the cache index cannot be loaded
    """
    config = config or load_config()
    return AudioCacheManager(
        cache_dir=config.cache.dir,
        max_size_mb=config.cache.max_size_mb,
        expiration_hours=config.cache.expiration_hours,
    )
