"""Immutable snapshot of the download policy settings."""

from dataclasses import dataclass, fields
from typing import Optional

from ..db.models import Setting


@dataclass(frozen=True)
class SyncSettings:
    """Download policy read once at the start of an operation.

    Operations take a snapshot and pass it down explicitly, so a settings
    change made mid-run only affects the next run.
    """

    auto_download: bool = True
    download_on_add: bool = True
    initial_download_count: int = 5
    max_download_concurrency: int = 5
    append_date_to_filename: bool = False
    append_episode_number_to_filename: bool = False
    download_episode_images: bool = False
    dont_download_deleted_from_disk: bool = False
    user_agent: Optional[str] = None

    def __post_init__(self):
        if self.initial_download_count < 0:
            raise ValueError("initial_download_count must be >= 0")
        if self.max_download_concurrency < 1:
            raise ValueError("max_download_concurrency must be >= 1")

    @classmethod
    def from_model(cls, setting: Setting) -> "SyncSettings":
        """Build a snapshot from a Setting row, using defaults for unset columns."""
        values = {}
        for f in fields(cls):
            value = getattr(setting, f.name, None)
            if value is not None:
                values[f.name] = value
        return cls(**values)

    @classmethod
    def load(cls, repository) -> "SyncSettings":
        """Read the current settings through a repository."""
        return cls.from_model(repository.get_or_create_setting())
