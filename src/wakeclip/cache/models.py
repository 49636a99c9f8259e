"""Data models for the audio cache."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path

DEFAULT_EXPIRATION_HOURS = 72
DEFAULT_MAX_SIZE_MB = 150


@dataclass
class AudioMetadata:
    """Metadata supplied when audio is inserted into the cache.

    Attributes:
        request_id: Identifier of the generation request that produced the audio
        voice_id: Voice used for synthesis
        duration: Audio duration in seconds, if known
        format: Encoding format ("mp3", "wav", "flac")
        quality: Quality tier ("standard", "high", "premium")
        generated_at: When the audio was generated
        text: Script that was synthesized, if known
    """

    request_id: str
    voice_id: str
    duration: float | None = None
    format: str = "mp3"
    quality: str = "standard"
    generated_at: datetime = field(default_factory=datetime.now)
    text: str | None = None


@dataclass
class CachedArtifact:
    """One stored audio file plus its metadata record.

    Attributes:
        audio_path: Path to the cached audio file
        size_kb: File size in kilobytes
        duration: Audio duration in seconds, if known
        created_at: When the audio was generated
        voice_id: Voice used for synthesis
        request_id: Identifier of the producing request
        format: Encoding format
        quality: Quality tier
        text: Script that was synthesized, if known
    """

    audio_path: Path
    size_kb: float
    duration: float | None
    created_at: datetime
    voice_id: str
    request_id: str
    format: str = "mp3"
    quality: str = "standard"
    text: str | None = None

    def is_expired(
        self,
        expiration_hours: float = DEFAULT_EXPIRATION_HOURS,
        now: datetime | None = None,
    ) -> bool:
        now = now or datetime.now()
        return now - self.created_at > timedelta(hours=expiration_hours)

    @property
    def metadata(self) -> AudioMetadata:
        return AudioMetadata(
            request_id=self.request_id,
            voice_id=self.voice_id,
            duration=self.duration,
            format=self.format,
            quality=self.quality,
            generated_at=self.created_at,
            text=self.text,
        )


@dataclass
class CacheIndex:
    """Mapping from cache key to artifact with running size accounting.

    ``total_size_mb`` is recomputed from the member artifacts after every
    mutation so that it always equals the sum of their sizes.
    """

    entries: dict[str, CachedArtifact] = field(default_factory=dict)
    total_size_mb: float = 0.0
    last_maintenance: datetime | None = None

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, key: object) -> bool:
        return key in self.entries

    def get(self, key: str) -> CachedArtifact | None:
        return self.entries.get(key)

    def add(self, key: str, artifact: CachedArtifact) -> None:
        self.entries[key] = artifact
        self.recalculate_size()

    def pop(self, key: str) -> CachedArtifact | None:
        artifact = self.entries.pop(key, None)
        self.recalculate_size()
        return artifact

    def recalculate_size(self) -> None:
        self.total_size_mb = (
            sum(artifact.size_kb for artifact in self.entries.values()) / 1024.0
        )

    def cleanup(
        self,
        max_size_mb: float,
        expiration_hours: float,
        now: datetime | None = None,
    ) -> list[CachedArtifact]:
        """Evict expired entries, then the oldest entries while over ``max_size_mb``.

        Args:
            max_size_mb: Size the index must not exceed after cleanup
            expiration_hours: Age after which entries are dropped regardless of size
            now: Reference time for the age check (defaults to now)

        Returns:
            The evicted artifacts, whose files the caller is responsible for deleting
        """
        now = now or datetime.now()
        evicted = []

        for key, artifact in list(self.entries.items()):
            if artifact.is_expired(expiration_hours, now):
                evicted.append(self.entries.pop(key))
        self.recalculate_size()

        while self.entries and self.total_size_mb > max_size_mb:
            oldest_key = min(
                self.entries, key=lambda k: self.entries[k].created_at
            )
            evicted.append(self.entries.pop(oldest_key))
            self.recalculate_size()

        return evicted


class CacheHealth(Enum):
    """Coarse health classification of the cache."""

    HEALTHY = "Healthy"
    WARNING = "Needs Attention"
    CRITICAL = "Critical - Cleanup Required"


@dataclass(frozen=True)
class CacheStatistics:
    """Read-only snapshot of the cache, recomputed on every request."""

    total_items: int = 0
    total_size_mb: float = 0.0
    oldest_item_date: datetime | None = None
    newest_item_date: datetime | None = None
    average_file_size_kb: float = 0.0
    expired_items_count: int = 0
    available_storage_gb: float = 0.0
    cache_hit_rate: float = 0.0

    @property
    def formatted_total_size(self) -> str:
        if self.total_size_mb < 1.0:
            return f"{self.total_size_mb * 1024:.1f} KB"
        return f"{self.total_size_mb:.1f} MB"

    @property
    def health(self) -> CacheHealth:
        if self.total_size_mb > 200:
            return CacheHealth.CRITICAL
        if self.total_size_mb > 100 or self.expired_items_count > 20:
            return CacheHealth.WARNING
        return CacheHealth.HEALTHY
