import os
import sys
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, IPvAnyAddress, model_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

from app.services.path_resolver import DocumentRoot

DEFAULT_CONFIG_PATH = "config/dirindex.toml"


class NetworkConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    address: IPvAnyAddress = Field(default="127.0.0.1", validate_default=True)
    port: int = Field(default=8080, ge=0, le=65535)


class ServiceConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    limit: int = Field(default=1000, ge=0, description="Maximum entries per listing; 0 lists everything.")
    roots: tuple[DocumentRoot, ...] = Field(min_length=1)
    template_index: bool = True
    json_api: bool = False
    scan_timeout_seconds: float = Field(default=10.0, gt=0)

    @model_validator(mode="after")
    def _prefixes_unique(self) -> "ServiceConfig":
        prefixes = [r.prefix for r in self.roots]
        duplicates = sorted({p for p in prefixes if prefixes.count(p) > 1})
        if duplicates:
            raise ValueError(f"Duplicate document root prefixes: {', '.join(duplicates)}")
        return self

    @property
    def effective_limit(self) -> int:
        return self.limit or sys.maxsize


class TemplateConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    index_file: Path | None = None
    error_file: Path | None = None


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="DIRINDEX_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    app_version: str = "0.1.0"
    log_level: Literal["debug", "info", "warning", "error", "critical"] = "info"
    cors_origins: list[str] = []
    config_dir: Path = Path(".")
    network: NetworkConfig = NetworkConfig()
    service: ServiceConfig
    template: TemplateConfig = TemplateConfig()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Config file values arrive as init kwargs; the environment overrides them.
        return env_settings, dotenv_settings, init_settings, file_secret_settings

    @model_validator(mode="before")
    @classmethod
    def _rebase_paths(cls, data: Any) -> Any:
        """Resolve relative roots and template files against the config directory.

        Also expands the single ``service.root`` shorthand into ``roots``.
        """
        if not isinstance(data, dict):
            return data
        base = Path(data.get("config_dir") or ".")

        service = data.get("service")
        if isinstance(service, dict):
            service = dict(service)
            roots = service.pop("roots", None) or {}
            root = service.pop("root", None)
            if isinstance(roots, dict):
                roots = dict(roots)
                if root is not None:
                    roots.setdefault("/", root)
                roots = [{"prefix": prefix, "directory": base / Path(d).expanduser()} for prefix, d in roots.items()]
            service["roots"] = roots
            data = {**data, "service": service}

        template = data.get("template")
        if isinstance(template, dict):
            template = {k: (base / Path(v).expanduser() if v is not None else None) for k, v in template.items()}
            data = {**data, "template": template}
        return data

    @model_validator(mode="after")
    def _index_template_configured(self) -> "Settings":
        if self.service.template_index and self.template.index_file is None:
            raise ValueError("template.index_file is required when service.template_index is enabled")
        return self


def config_file_path(config_path: str | Path | None = None) -> Path:
    return Path(config_path or os.environ.get("DIRINDEX_CONFIG") or DEFAULT_CONFIG_PATH).expanduser().resolve()


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Build Settings from the TOML config file plus DIRINDEX_* environment variables.

    A missing config file is not an error by itself; validation then fails
    only if required values (a document root) are not set some other way.
    """
    path = config_file_path(config_path)
    file_values = TomlConfigSettingsSource(Settings, toml_file=path)()
    return Settings(**file_values, config_dir=path.parent)
