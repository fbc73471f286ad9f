"""Centralized configuration using Pydantic BaseSettings"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppConfig(BaseSettings):
    """Application configuration with environment variable support"""

    # Site source
    # Note: project/software/spec sources are declared in the site's content tree
    site_source: str = Field(default=".", description="Root directory of the site source")
    site_config_file: str = Field(
        default="_config.yml", description="Site configuration file, relative to site_source"
    )
    # Validated against RefreshMode when the site configuration is loaded
    refresh_remote_data: str | None = Field(
        default=None,
        description="Override for the site's refresh_remote_data (always, last-resort, skip)",
    )

    # Git
    git_executable: str = Field(default="git", description="Git executable to invoke")
    git_ssh_command: str = Field(
        default="ssh -o UserKnownHostsFile=/dev/null -o StrictHostKeyChecking=no",
        description="core.sshCommand written into every new checkout",
    )
    default_repo_branch: str = Field(
        default="master", description="Branch used when a source declares none"
    )
    default_remote_name: str = Field(default="origin", description="Remote name for checkouts")
    default_docs_subtree: str = Field(
        default="docs", description="Software documentation subtree when none is declared"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Log level for the build CLI")

    # OpenTelemetry
    otel_logging_enabled: bool = Field(
        default=False, description="Emit an OpenTelemetry log record per synced source"
    )
    otel_tracing_enabled: bool = Field(
        default=False, description="Emit an OpenTelemetry span per synced source"
    )
    otel_endpoint: str = Field(
        default="http://localhost:4318",
        description="OpenTelemetry collector endpoint (HTTP/protobuf)",
    )
    otel_service_name: str = Field(
        default="open-project-hub-sync", description="Service name for OpenTelemetry"
    )
    otel_service_version: str = Field(
        default="1.0.0", description="Service version for OpenTelemetry"
    )

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )


# Global config instance
config = AppConfig()
