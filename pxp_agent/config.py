"""PXP Agent — Agent configuration.

Configuration is loaded from (in order of increasing priority):
    1. Built-in defaults (this file)
    2. System config: /etc/pxp-agent/config.yaml
    3. User config:   ~/.pxp-agent/config.yaml
    4. An explicit ``--config`` file
    5. Environment variables prefixed with PXP_

Call ``Settings.load()`` once at agent startup.  The broker section is only
checked when the agent actually connects (``validate_broker``) so that the
offline CLI commands work without certificates.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Annotated, Literal

from pydantic import BaseModel, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from pxp_agent.exceptions import ConfigurationError

DEFAULT_CONNECTOR = "pxp_agent.transport.loopback.LoopbackConnector"


# ---------------------------------------------------------------------------
# Sub-configuration blocks
# ---------------------------------------------------------------------------


class BrokerConfig(BaseModel):
    url: str | None = Field(
        default=None,
        description="Broker WebSocket URI, e.g. wss://broker.example.com:8142/pcp/.",
    )
    ca: Path | None = Field(default=None, description="CA certificate file.")
    crt: Path | None = Field(default=None, description="Agent certificate file.")
    key: Path | None = Field(default=None, description="Agent private key file.")
    connector: str = Field(
        default=DEFAULT_CONNECTOR,
        description="Dotted path of the Connector class used to reach the broker.",
    )
    send_timeout: Annotated[int, Field(ge=1, le=300)] = Field(
        default=10,
        description="Seconds the broker may hold a response before it expires.",
    )

    @field_validator("ca", "crt", "key", mode="before")
    @classmethod
    def expand_paths(cls, v: object) -> object:
        if isinstance(v, str):
            return Path(v).expanduser()
        return v


class ModulesConfig(BaseModel):
    directory: Path = Field(
        default=Path("~/.pxp-agent/modules"),
        description="Directory scanned (non-recursively) for external modules.",
        validate_default=True,
    )
    timeout: Annotated[float, Field(gt=0, le=3600)] = Field(
        default=60.0,
        description="Deadline in seconds for one external action invocation.",
    )
    discovery_timeout: Annotated[float, Field(gt=0, le=300)] = Field(
        default=10.0,
        description="Deadline in seconds for an external module's self-description.",
    )

    @field_validator("directory", mode="before")
    @classmethod
    def expand_directory(cls, v: object) -> object:
        if isinstance(v, str):
            return Path(v).expanduser()
        if isinstance(v, Path):
            return v.expanduser()
        return v


class LogLevel(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class LoggingConfig(BaseModel):
    level: LogLevel = LogLevel.INFO
    format: Literal["json", "console"] = "console"
    file: Path | None = None


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PXP_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    broker: BrokerConfig = Field(default_factory=BrokerConfig)
    modules: ModulesConfig = Field(default_factory=ModulesConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # YAML values arrive as init kwargs; the environment must beat them.
        return env_settings, init_settings, dotenv_settings, file_secret_settings

    @classmethod
    def load(cls, config_file: Path | None = None) -> "Settings":
        """Load settings from file + environment variables."""
        data: dict[str, object] = {}

        candidates = [
            Path("/etc/pxp-agent/config.yaml"),
            Path.home() / ".pxp-agent" / "config.yaml",
        ]
        if config_file:
            if not config_file.exists():
                raise ConfigurationError(
                    f"config file not found: {config_file}",
                    context={"path": str(config_file)},
                )
            candidates.append(config_file)

        for path in candidates:
            if path.exists():
                import yaml

                with path.open() as f:
                    try:
                        loaded = yaml.safe_load(f) or {}
                    except yaml.YAMLError as exc:
                        raise ConfigurationError(
                            f"invalid YAML in {path}: {exc}",
                            context={"path": str(path)},
                        ) from exc
                if not isinstance(loaded, dict):
                    raise ConfigurationError(
                        f"config file {path} must contain a mapping",
                        context={"path": str(path)},
                    )
                data.update(loaded)

        try:
            return cls(**data)
        except ValidationError as exc:
            raise ConfigurationError(
                f"invalid configuration: {_summarise(exc)}",
                context={"errors": exc.errors(include_url=False)},
            ) from exc

    def validate_broker(self) -> None:
        """Raise ``ConfigurationError`` unless the broker section is usable."""
        broker = self.broker
        if not broker.url:
            raise ConfigurationError("broker url is not set")
        for name in ("ca", "crt", "key"):
            path = getattr(broker, name)
            if path is None:
                raise ConfigurationError(f"broker {name} is not set")
            if not path.is_file():
                raise ConfigurationError(
                    f"broker {name} file not found: {path}",
                    context={"field": name, "path": str(path)},
                )


def _summarise(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(p) for p in error["loc"]) or "settings"
        parts.append(f"{location}: {error['msg']}")
    return "; ".join(parts)


# Module-level singleton, replaced by ``Settings.load()`` at agent startup.
_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def override_settings(settings: Settings) -> None:
    """Replace the module-level singleton. Used in tests."""
    global _settings
    _settings = settings
