import stat

import pytest
from pydantic import ValidationError

from lexbates.config import Settings


def test_registry_paths_live_under_data_dir(tmp_path):
    settings = Settings(data_dir=tmp_path / "data", config_dir=tmp_path / "config")

    assert settings.get_registry_path() == tmp_path / "data" / "bates" / "registry.jsonl"
    assert settings.get_collection_path("exhibits") == tmp_path / "data" / "exhibits.jsonl"
    assert settings.get_artifact_dir().is_dir()


def test_hmac_key_is_created_once_and_reused(tmp_path):
    settings = Settings(data_dir=tmp_path / "data", config_dir=tmp_path / "config")

    key = settings.get_registry_hmac_key()
    key_path = tmp_path / "config" / "registry.key"
    assert key_path.exists()
    assert len(key) == 32
    assert stat.S_IMODE(key_path.stat().st_mode) == 0o600

    fresh_settings = Settings(data_dir=tmp_path / "data", config_dir=tmp_path / "config")
    assert fresh_settings.get_registry_hmac_key() == key


def test_environment_overrides_defaults(tmp_path, monkeypatch):
    monkeypatch.setenv("LEXBATES_DEFAULT_PADDING", "8")
    monkeypatch.setenv("LEXBATES_DEFAULT_POSITION", "top-left")

    settings = Settings(data_dir=tmp_path / "data", config_dir=tmp_path / "config")

    assert settings.default_padding == 8
    assert settings.default_position == "top-left"


def test_invalid_position_is_rejected(tmp_path):
    with pytest.raises(ValidationError):
        Settings(data_dir=tmp_path / "data", default_position="middle")


def test_default_principal_falls_back_to_user(tmp_path, monkeypatch):
    monkeypatch.setenv("USER", "jdoe")
    monkeypatch.delenv("LEXBATES_DEFAULT_PRINCIPAL", raising=False)

    settings = Settings(data_dir=tmp_path / "data")

    assert settings.default_principal == "jdoe"
