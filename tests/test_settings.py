"""Tests for gitpolish.settings: precedence and required values."""

from pathlib import Path

import pytest
import tomlkit

import gitpolish.settings as settings_module
from gitpolish.errors import ConfigurationError
from gitpolish.settings import PolishSettings, get_settings, require_client_id

_ENV_VARS = (
    "GIT_POLISH_CLIENT_ID",
    "GIT_POLISH_GEMINI_API_KEY",
    "GIT_POLISH_GEMINI_MODEL",
    "GIT_POLISH_TOKEN_PATH",
    "GEMINI_API_KEY",
)


def _write_config(tmp_path: Path, config: dict) -> Path:
    config_path = tmp_path / "config.toml"
    config_path.write_text(tomlkit.dumps(config))
    return config_path


@pytest.fixture(autouse=True)
def clean_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)  # no stray .env
    monkeypatch.setattr(settings_module, "CONFIG_PATH", tmp_path / "missing.toml")


class TestGetSettings:
    def test_defaults_without_config(self) -> None:
        s = get_settings()
        assert s.client_id is None
        assert s.gemini_model == "gemini-2.5-flash"
        assert s.token_path == settings_module.DEFAULT_TOKEN_PATH

    def test_config_file_values(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        config_path = _write_config(
            tmp_path,
            {"client_id": "Iv1.file", "gemini_api_key": "file-key", "token_path": str(tmp_path / "tok")},
        )
        monkeypatch.setattr(settings_module, "CONFIG_PATH", config_path)

        s = get_settings()
        assert s.client_id == "Iv1.file"
        assert s.gemini_api_key is not None
        assert s.gemini_api_key.get_secret_value() == "file-key"
        assert s.token_path == tmp_path / "tok"

    def test_env_var_overrides_config_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        config_path = _write_config(tmp_path, {"client_id": "Iv1.file"})
        monkeypatch.setattr(settings_module, "CONFIG_PATH", config_path)
        monkeypatch.setenv("GIT_POLISH_CLIENT_ID", "Iv1.env")

        assert get_settings().client_id == "Iv1.env"

    def test_dotenv_in_cwd(self, tmp_path: Path) -> None:
        (tmp_path / ".env").write_text("GIT_POLISH_GEMINI_MODEL=gemini-2.5-pro\n")
        assert get_settings().gemini_model == "gemini-2.5-pro"

    def test_plain_gemini_api_key_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GEMINI_API_KEY", "plain-key")
        s = get_settings()
        assert s.gemini_api_key is not None
        assert s.gemini_api_key.get_secret_value() == "plain-key"

    def test_overrides_win(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GIT_POLISH_CLIENT_ID", "Iv1.env")
        assert get_settings(client_id="Iv1.arg").client_id == "Iv1.arg"

    def test_toml_is_cached(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        config_path = _write_config(tmp_path, {"client_id": "first"})
        monkeypatch.setattr(settings_module, "CONFIG_PATH", config_path)
        assert get_settings().client_id == "first"
        config_path.write_text(tomlkit.dumps({"client_id": "second"}))
        assert get_settings().client_id == "first"


class TestRequireClientId:
    def test_returns_client_id(self) -> None:
        assert require_client_id(PolishSettings(client_id="Iv1.abc")) == "Iv1.abc"

    def test_missing_raises(self) -> None:
        with pytest.raises(ConfigurationError, match="client id"):
            require_client_id(PolishSettings())
