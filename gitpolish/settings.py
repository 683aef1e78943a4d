"""Settings resolution: explicit overrides > env vars / .env > config.toml > defaults."""

from functools import lru_cache
from pathlib import Path

import tomlkit
from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from gitpolish.errors import ConfigurationError

CONFIG_PATH = Path.home() / ".config" / "git-polish" / "config.toml"
DEFAULT_TOKEN_PATH = Path.home() / ".git-polish-token"


class PolishSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="GIT_POLISH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # GitHub OAuth App used by the device flow
    client_id: str | None = None
    github_api_url: str = "https://api.github.com"
    github_oauth_url: str = "https://github.com"

    # LLM
    gemini_api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("GIT_POLISH_GEMINI_API_KEY", "GEMINI_API_KEY", "gemini_api_key"),
    )
    gemini_model: str = "gemini-2.5-flash"

    token_path: Path = DEFAULT_TOKEN_PATH

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # init kwargs carry config.toml values, so env vars and .env must outrank them
        return env_settings, dotenv_settings, init_settings, file_secret_settings


@lru_cache(maxsize=1)
def _load_toml() -> tomlkit.TOMLDocument:
    """Load ~/.config/git-polish/config.toml, returning empty document if missing."""
    if not CONFIG_PATH.exists():
        return tomlkit.document()
    with CONFIG_PATH.open() as fh:
        return tomlkit.load(fh)


def get_settings(**overrides: object) -> PolishSettings:
    """Return PolishSettings with config.toml values as defaults.

    Env vars and .env always win over the file; keyword overrides win over both.
    """
    file_defaults = {k: v for k, v in _load_toml().unwrap().items() if not isinstance(v, dict)}
    settings = PolishSettings(**file_defaults)
    if overrides:
        settings = settings.model_copy(update=overrides)
    return settings


def require_client_id(settings: PolishSettings) -> str:
    if not settings.client_id:
        raise ConfigurationError(
            f"Missing GitHub OAuth client id. Set GIT_POLISH_CLIENT_ID or client_id in {CONFIG_PATH}, "
            "or run: git-polish configure"
        )
    return settings.client_id
