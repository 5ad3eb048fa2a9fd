"""Merge defaults for import services."""

from __future__ import annotations

from dataclasses import dataclass

from storesync.domain.model import MergeMode

from .env import optional_env_var
from .errors import ConfigurationError

DEFAULT_MERGE_MODE = MergeMode.SMART


@dataclass(frozen=True, slots=True)
class SyncConfig:
    merge_mode: MergeMode = DEFAULT_MERGE_MODE


def get_sync_config() -> SyncConfig:
    raw_mode = optional_env_var("STORESYNC_MERGE_MODE")
    if raw_mode is None:
        return SyncConfig()
    try:
        mode = MergeMode(raw_mode.lower())
    except ValueError as exc:
        allowed = ", ".join(mode.value for mode in MergeMode)
        raise ConfigurationError(
            f"Invalid STORESYNC_MERGE_MODE {raw_mode!r}; expected one of: {allowed}"
        ) from exc
    return SyncConfig(merge_mode=mode)
