"""Root settings model for the context engine."""

from typing import Any, Literal

from pydantic import Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from touchpoint.config.models import (
    BackendConfig,
    ContextConfig,
    ExtractionConfig,
    GraphConfig,
    ObservabilityConfig,
    PipelineConfig,
    ProjectionConfig,
)

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

# TOML configuration handed to the settings source
_toml_config: dict[str, Any] = {}


def set_toml_config(config: dict[str, Any]) -> None:
    """Set the TOML configuration to be used by Settings."""
    global _toml_config
    _toml_config = config


class TomlConfigSettingsSource(PydanticBaseSettingsSource):
    """Settings source that reads from the loaded TOML configuration."""

    def get_field_value(
        self, field: Any, field_name: str  # noqa: ARG002
    ) -> tuple[Any, str, bool]:
        value = _toml_config.get(field_name)
        return value, field_name, value is not None

    def __call__(self) -> dict[str, Any]:
        return _toml_config.copy()


class Settings(BaseSettings):
    """Root configuration object containing all nested sections.

    Configuration is loaded in this order:
    1. Pydantic model defaults (in code)
    2. config/default.toml
    3. config/{TOUCHPOINT_ENV}.toml
    4. TOUCHPOINT_* environment variables
    """

    model_config = SettingsConfigDict(
        env_prefix="TOUCHPOINT_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(default="touchpoint", description="Application name for logging")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: LogLevel = Field(default="INFO", description="Logging level")

    extraction: ExtractionConfig = Field(
        default_factory=ExtractionConfig,
        description="Entity extraction configuration",
    )
    projection: ProjectionConfig = Field(
        default_factory=ProjectionConfig,
        description="Composite state defaults",
    )
    graph: GraphConfig = Field(
        default_factory=GraphConfig,
        description="Graph rendering configuration",
    )
    context: ContextConfig = Field(
        default_factory=ContextConfig,
        description="Context serialization configuration",
    )
    pipeline: PipelineConfig = Field(
        default_factory=PipelineConfig,
        description="Pipeline configuration",
    )
    backend: BackendConfig = Field(
        default_factory=BackendConfig,
        description="Live backend configuration",
    )
    observability: ObservabilityConfig = Field(
        default_factory=ObservabilityConfig,
        description="Observability configuration",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        file_secret_settings: PydanticBaseSettingsSource,  # noqa: ARG003
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customize settings sources to include TOML config.

        Priority order (highest to lowest):
        1. init_settings (constructor arguments)
        2. env_settings (TOUCHPOINT_* environment variables)
        3. toml_settings (config/*.toml files)
        4. (defaults from model)
        """
        return (
            init_settings,
            env_settings,
            TomlConfigSettingsSource(settings_cls),
        )
