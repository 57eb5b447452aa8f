"""Application settings — Pydantic-based configuration with YAML and env var support.

Configuration is loaded from (in order of precedence):
  1. Environment variables (DOCBRIDGE_ prefix), then the .env file
  2. YAML config file (if specified)
  3. Default values

Keyword arguments passed to ``Settings`` rank above all of them.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)


class FirestoreSettings(BaseModel):
    """Cloud Firestore connection configuration.

    ``credentials_path`` points to a service-account JSON file. When it is
    unset, Application Default Credentials are used. ``emulator_host``
    (``"localhost:8080"``) targets the Firestore emulator with anonymous
    credentials instead.
    """

    project_id: str | None = Field(default=None, description="Google Cloud project id")
    credentials_path: str | None = Field(default=None, description="Path to a service-account JSON key")
    database_id: str = Field(default="(default)", description="Firestore database id")
    app_name: str = Field(default="[DEFAULT]", description="Firebase app name shared by adapters")
    emulator_host: str | None = Field(default=None, description="Firestore emulator host:port")

    @field_validator("credentials_path", "emulator_host", "project_id", mode="before")
    @classmethod
    def _blank_to_none(cls, v: str | None) -> str | None:
        """Treat empty env values as unset."""
        if isinstance(v, str) and not v.strip():
            return None
        return v


class ObservabilitySettings(BaseModel):
    """Observability configuration."""

    log_level: str = Field(default="info", description="Log level: debug, info, warning, error")
    log_format: str = Field(default="json", description="Log format: json, console")


class Settings(BaseSettings):
    """Root application settings.

    Configuration is loaded from environment variables with the DOCBRIDGE_ prefix.
    Nested settings use double underscores: DOCBRIDGE_FIRESTORE__PROJECT_ID=my-project

    Example:
        DOCBRIDGE_FIRESTORE__PROJECT_ID=my-project
        DOCBRIDGE_FIRESTORE__CREDENTIALS_PATH=/secrets/sa.json
        DOCBRIDGE_OBSERVABILITY__LOG_FORMAT=console
    """

    model_config = {
        "env_prefix": "DOCBRIDGE_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }

    # Application metadata
    app_name: str = Field(default="docbridge", description="Application name")
    debug: bool = Field(default=False, description="Debug mode")
    default_page_size: int = Field(default=20, ge=1, description="Page size used when none is given")

    # Component settings
    firestore: FirestoreSettings = Field(default_factory=FirestoreSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # YAML sits below env so DOCBRIDGE_* variables override the file.
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )

    @classmethod
    def from_yaml(cls, path: str | Path) -> Settings:
        """Load settings from a YAML configuration file.

        Values from the YAML file replace the defaults; environment variables
        still take precedence.

        Args:
            path: Path to the YAML config file.

        Returns:
            Populated Settings instance.
        """
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        class FileSettings(cls):  # type: ignore[valid-type,misc]
            model_config = SettingsConfigDict(yaml_file=config_path)

        return FileSettings()
