"""Configuration loading for quotesync."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .sync.remote_source import DEFAULT_ENDPOINT
from .transfer import DEFAULT_EXPORT_FILENAME, ImportPolicy


@dataclass
class StorageConfig:
    db_path: str = "~/.quotesync/quotes.db"


@dataclass
class RemoteConfig:
    """Configuration for the remote quote feed."""

    enabled: bool = True
    endpoint: str = DEFAULT_ENDPOINT
    timeout_seconds: float = 10.0
    fetch_limit: int = 5


@dataclass
class SyncConfig:
    """Configuration for sync cycles."""

    enabled: bool = True
    interval_seconds: int = 15
    push_local_only: bool = True  # Re-upload local-only quotes every cycle


@dataclass
class ImportExportConfig:
    import_policy: ImportPolicy = ImportPolicy.REPLACE
    export_filename: str = DEFAULT_EXPORT_FILENAME


@dataclass
class Config:
    storage: StorageConfig = field(default_factory=StorageConfig)
    remote: RemoteConfig = field(default_factory=RemoteConfig)
    sync: SyncConfig = field(default_factory=SyncConfig)
    import_export: ImportExportConfig = field(default_factory=ImportExportConfig)


def _get_env(key: str, default: Any = None) -> Any:
    """Get environment variable with QUOTESYNC_ prefix."""
    return os.environ.get(f"QUOTESYNC_{key}", default)


def _parse_bool(value: str) -> bool:
    return value.lower() in ("true", "1", "yes")


def _parse_import_policy(value: Any) -> ImportPolicy:
    """Parse an import policy name ("replace" or "append")."""
    if isinstance(value, ImportPolicy):
        return value
    try:
        return ImportPolicy(str(value).lower())
    except ValueError:
        raise ValueError(
            f"Invalid import_policy {value!r}, expected 'replace' or 'append'"
        ) from None


def _apply_env_overrides(config: Config) -> Config:
    """Apply environment variable overrides to config."""
    # Storage overrides
    if db_path := _get_env("DB_PATH"):
        config.storage.db_path = db_path

    # Remote overrides
    if remote_enabled := _get_env("REMOTE_ENABLED"):
        config.remote.enabled = _parse_bool(remote_enabled)
    if endpoint := _get_env("REMOTE_ENDPOINT"):
        config.remote.endpoint = endpoint
    if timeout := _get_env("REMOTE_TIMEOUT"):
        config.remote.timeout_seconds = float(timeout)

    # Sync overrides
    if sync_enabled := _get_env("SYNC_ENABLED"):
        config.sync.enabled = _parse_bool(sync_enabled)
    if sync_interval := _get_env("SYNC_INTERVAL"):
        config.sync.interval_seconds = int(sync_interval)
    if push_local_only := _get_env("SYNC_PUSH_LOCAL_ONLY"):
        config.sync.push_local_only = _parse_bool(push_local_only)

    # Import policy
    if import_policy := _get_env("IMPORT_POLICY"):
        config.import_export.import_policy = _parse_import_policy(import_policy)

    return config


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from YAML file with environment variable overrides.

    Args:
        config_path: Path to YAML config file. If None, uses default config.

    Returns:
        Loaded and validated Config object.
    """
    config = Config()

    if config_path:
        path = Path(config_path)
        if path.exists():
            with open(path) as f:
                data = yaml.safe_load(f) or {}

            # Parse storage config
            if "storage" in data:
                config.storage = StorageConfig(
                    db_path=data["storage"].get("db_path", config.storage.db_path)
                )

            # Parse remote config
            if "remote" in data:
                remote_data = data["remote"]
                config.remote = RemoteConfig(
                    enabled=remote_data.get("enabled", config.remote.enabled),
                    endpoint=remote_data.get("endpoint", config.remote.endpoint),
                    timeout_seconds=remote_data.get(
                        "timeout_seconds", config.remote.timeout_seconds
                    ),
                    fetch_limit=remote_data.get(
                        "fetch_limit", config.remote.fetch_limit
                    ),
                )

            # Parse sync config
            if "sync" in data:
                sync_data = data["sync"]
                config.sync = SyncConfig(
                    enabled=sync_data.get("enabled", config.sync.enabled),
                    interval_seconds=sync_data.get(
                        "interval_seconds", config.sync.interval_seconds
                    ),
                    push_local_only=sync_data.get(
                        "push_local_only", config.sync.push_local_only
                    ),
                )

            # Parse import/export config
            if "import_export" in data:
                ie_data = data["import_export"]
                config.import_export = ImportExportConfig(
                    import_policy=_parse_import_policy(
                        ie_data.get("import_policy", config.import_export.import_policy)
                    ),
                    export_filename=ie_data.get(
                        "export_filename", config.import_export.export_filename
                    ),
                )

    # Apply environment variable overrides
    config = _apply_env_overrides(config)

    return config
