"""Settings resolution: config.toml provides the defaults, FLG_* environment variables override them."""

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

import tomlkit
from pydantic import BaseModel, SecretStr, ValidationError, model_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict
from tomlkit.exceptions import TOMLKitError

from flg.errors import ConfigError

CONFIG_PATH = Path("config.toml")
GITHUB_API_URL = "https://api.github.com"


class GroupSettings(BaseModel):
    name: str
    description: str = ""
    label: str


class UngroupedSettings(BaseModel):
    # Off by default: records matching no group are dropped.
    enabled: bool = False
    name: str = "Others"
    description: str = ""


class GenerationSettings(BaseModel):
    label: str  # issues without this label are ignored
    groups: list[GroupSettings] = []
    sort_by_updated_time: bool = False
    keep_extra_fields: bool = True
    ungrouped: UngroupedSettings = UngroupedSettings()

    @model_validator(mode="after")
    def _unique_group_labels(self) -> "GenerationSettings":
        labels = [group.label for group in self.groups]
        duplicates = sorted({label for label in labels if labels.count(label) > 1})
        if duplicates:
            raise ValueError(f"duplicate group labels: {', '.join(duplicates)}")
        return self

    @property
    def group_labels(self) -> frozenset[str]:
        return frozenset(group.label for group in self.groups)


class GitHubSettings(BaseModel):
    token: SecretStr | None = None  # anonymous access works for public repositories
    owner: str
    repository: str
    state: Literal["open", "closed", "all"] = "open"
    filter_by_label: bool = False  # also ask the API to filter on generation.label
    api_url: str = GITHUB_API_URL


class OutputSettings(BaseModel):
    path: Path = Path("friend-links.json")
    format: Literal["json", "js"] = "json"


class FlgSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="FLG_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    github: GitHubSettings
    generation: GenerationSettings
    output: OutputSettings = OutputSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Environment wins over values read from config.toml (passed as init kwargs).
        return env_settings, dotenv_settings, init_settings, file_secret_settings


@lru_cache(maxsize=4)
def _load_toml(path: Path) -> dict:
    """Load a config file as plain python values, returning an empty dict if missing."""
    if not path.exists():
        return {}
    try:
        with path.open(encoding="utf-8") as fh:
            return tomlkit.load(fh).unwrap()
    except (OSError, TOMLKitError) as exc:
        raise ConfigError(f"Could not read {path}: {exc}") from exc


def resolve_config_path(config_path: Path | None = None) -> Path:
    """--config flag, then FLG_CONFIG, then ./config.toml."""
    if config_path is not None:
        return config_path
    env_path = os.environ.get("FLG_CONFIG")
    return Path(env_path) if env_path else CONFIG_PATH


def get_settings(config_path: Path | None = None) -> FlgSettings:
    path = resolve_config_path(config_path)
    file_values = _load_toml(path)
    try:
        return FlgSettings(**file_values)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
        )
        raise ConfigError(f"Invalid configuration in {path}: {problems}") from exc
