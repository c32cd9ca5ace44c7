"""Configuration management with Pydantic and XDG base directory support."""

import os
import sys
from pathlib import Path
from typing import Any, Literal

from pydantic import Field, PrivateAttr
from pydantic_settings import BaseSettings, SettingsConfigDict

from lexbates.utils.crypto import load_or_create_hmac_key


def get_xdg_data_home() -> Path:
    """Get XDG_DATA_HOME directory, defaulting to ~/.local/share."""
    xdg_data = os.getenv("XDG_DATA_HOME")
    if xdg_data:
        return Path(xdg_data)
    return Path.home() / ".local" / "share"


def get_xdg_config_home() -> Path:
    """Get XDG_CONFIG_HOME directory, defaulting to ~/.config."""
    xdg_config = os.getenv("XDG_CONFIG_HOME")
    if xdg_config:
        return Path(xdg_config)
    return Path.home() / ".config"


StampPositionName = Literal["bottom-right", "bottom-left", "top-left", "top-right"]


class Settings(BaseSettings):
    """LexBates configuration settings.

    Precedence: CLI flag > environment variable > config file > defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="LEXBATES_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Data directories
    data_dir: Path | None = Field(
        default=None,
        description="Override data directory (defaults to XDG_DATA_HOME/lexbates)",
    )

    config_dir: Path | None = Field(
        default=None,
        description="Override config directory (defaults to XDG_CONFIG_HOME/lexbates)",
    )

    # Numbering defaults
    default_padding: int = Field(
        default=5,
        ge=0,
        description="Zero-fill width applied when a configuration does not specify one",
    )

    default_position: StampPositionName = Field(
        default="bottom-right",
        description="Stamp placement used when a labeling request omits a position",
    )

    # Labeling execution
    render_timeout_seconds: float = Field(
        default=60.0,
        gt=0.0,
        description="Upper bound for stamping a single document inside a batch",
    )

    default_principal: str | None = Field(
        default=None,
        description="Principal recorded as applied_by/created_by when none is given",
    )

    registry_hmac_key_path: Path | None = Field(
        default=None,
        description="Location of the HMAC key sealing Bates registry entries",
    )

    _resolved_data_dir: Path | None = PrivateAttr(default=None)
    _data_dir_warning_emitted: bool = PrivateAttr(default=False)

    def model_post_init(self, __context: Any) -> None:
        super().model_post_init(__context)
        if self.default_principal is None:
            object.__setattr__(self, "default_principal", os.getenv("USER") or None)

    def get_data_dir(self) -> Path:
        """Get the data directory, creating if necessary."""
        if self._resolved_data_dir is not None:
            return self._resolved_data_dir

        if self.data_dir:
            data_dir = self.data_dir
            data_dir.mkdir(parents=True, exist_ok=True)
            self._resolved_data_dir = data_dir
            return data_dir

        primary_dir = get_xdg_data_home() / "lexbates"
        try:
            primary_dir.mkdir(parents=True, exist_ok=True)
            self._resolved_data_dir = primary_dir
            return primary_dir
        except PermissionError as exc:
            fallback = Path.cwd() / ".lexbates-data"
            fallback.mkdir(parents=True, exist_ok=True)
            self._resolved_data_dir = fallback
            if not self._data_dir_warning_emitted:
                print(
                    f"Warning: cannot create data directory at {primary_dir} ({exc}). "
                    f"Using local '{fallback}' instead. Pass --data-dir to override.",
                    file=sys.stderr,
                )
                self._data_dir_warning_emitted = True
            return fallback

    def get_config_dir(self) -> Path:
        """Get the config directory, creating if necessary."""
        if self.config_dir:
            config_dir = self.config_dir
        else:
            config_dir = get_xdg_config_home() / "lexbates"

        config_dir.mkdir(parents=True, exist_ok=True)
        return config_dir

    def get_bates_dir(self) -> Path:
        """Get the directory holding the Bates registry files."""
        bates_dir = self.get_data_dir() / "bates"
        bates_dir.mkdir(parents=True, exist_ok=True)
        return bates_dir

    def get_registry_path(self) -> Path:
        """Get path to the append-only Bates registry."""
        return self.get_bates_dir() / "registry.jsonl"

    def get_artifact_dir(self) -> Path:
        """Get path to the content-addressed artifact store."""
        artifact_dir = self.get_data_dir() / "artifacts"
        artifact_dir.mkdir(parents=True, exist_ok=True)
        return artifact_dir

    def get_collection_path(self, name: str) -> Path:
        """Get path to the JSONL file backing the ``name`` record collection."""
        return self.get_data_dir() / f"{name}.jsonl"

    def get_registry_hmac_key(self) -> bytes:
        """Return the HMAC key used to seal Bates registry entries."""
        key_path = (
            self.registry_hmac_key_path
            if self.registry_hmac_key_path is not None
            else self.get_config_dir() / "registry.key"
        )
        return load_or_create_hmac_key(key_path, length=32)


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def set_settings(settings: Settings) -> None:
    """Set the global settings instance (useful for testing)."""
    global _settings
    _settings = settings
