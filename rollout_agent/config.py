"""
Configuration management for the rollout agent.

Implements multi-level configuration loading with precedence:
1. Environment variables (highest priority)
2. .env files (~/.rollout-agent/.env, ./.env, ./.env.defaults)
3. YAML config files (project, user, then system)
4. Default values
"""

from pathlib import Path
from typing import Literal, Optional, Tuple

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict, YamlConfigSettingsSource, PydanticBaseSettingsSource


class Config(BaseSettings):
    """Complete configuration schema for the rollout agent with flat structure."""

    model_config = SettingsConfigDict(
        # Load from .env files in order of precedence (lowest to highest)
        env_file=[
            ".env.defaults",
            ".env",
            str(Path.home() / ".rollout-agent" / ".env"),
        ],
        # Load from YAML files in order of precedence (lowest to highest)
        yaml_file=[
            "/etc/rollout-agent/config.yaml",
            str(Path.home() / ".rollout-agent" / "config.yaml"),
            ".rollout-agent/config.yaml",
        ],
        env_prefix="ROLLOUT_AGENT_",
        env_nested_delimiter="__",
        case_sensitive=False,
        # Ignore extra fields (like AZURE_OPENAI_API_KEY that aren't part of config schema)
        extra="ignore",
        env_file_encoding="utf-8",
    )

    # =================================================================
    # LLM Configuration
    # =================================================================

    llm_default_model: str = Field(default="gpt-4o", description="Model used by the Kubernetes agent")
    llm_base_url: Optional[str] = Field(default=None, description="Base URL for OpenAI-compatible API")
    llm_use_azure: bool = Field(default=True, description="Use Azure OpenAI (Azure CLI credential)")
    llm_api_key_env: str = Field(
        default="OPENAI_API_KEY", description="Environment variable holding the OpenAI API key"
    )
    llm_temperature: float = Field(default=0.2, ge=0.0, le=2.0, description="Sampling temperature")

    # =================================================================
    # Kubernetes
    # =================================================================

    kubernetes_context: Optional[str] = Field(default=None, description="Kubernetes context to use")
    kubernetes_namespace: str = Field(default="default", description="Default Kubernetes namespace")
    kubectl_timeout_seconds: int = Field(default=30, ge=1, description="Timeout for kubectl calls in seconds")
    logs_tail_lines: int = Field(default=100, ge=1, description="Default number of log lines to fetch")
    events_limit: int = Field(default=50, ge=1, description="Default maximum number of events to return")

    # =================================================================
    # GitHub fix submission
    # =================================================================

    github_token_env: str = Field(
        default="GITHUB_TOKEN", description="Environment variable holding the GitHub token"
    )
    github_api_url: str = Field(default="https://api.github.com", description="GitHub REST API base URL")
    git_timeout_seconds: int = Field(default=120, ge=1, description="Timeout for git operations in seconds")

    # =================================================================
    # Decision policy
    # =================================================================

    promote_on_error: bool = Field(
        default=True,
        description="Verdict reported when the analysis itself fails (True keeps the rollout going)",
    )

    # =================================================================
    # API server / logging
    # =================================================================

    api_host: str = Field(default="0.0.0.0", description="Host to bind the API server to")
    api_port: int = Field(default=8080, ge=1, le=65535, description="Port to bind the API server to")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO", description="Log level")
    log_json: bool = Field(default=False, description="Render logs as JSON lines")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        """Customize settings sources to include YAML support."""
        yaml_settings = YamlConfigSettingsSource(settings_cls)
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            yaml_settings,
            file_secret_settings,
        )


def load_config() -> Config:
    """
    Load configuration from all sources with proper precedence.

    Precedence (highest to lowest):
    1. Environment variables (ROLLOUT_AGENT_*)
    2. User .env (~/.rollout-agent/.env)
    3. Project .env (./.env)
    4. Project defaults (./.env.defaults)
    5. Project config (./.rollout-agent/config.yaml)
    6. User config (~/.rollout-agent/config.yaml)
    7. System config (/etc/rollout-agent/config.yaml)
    8. Default values

    Examples:
        >>> config = load_config()
        >>> print(config.llm_default_model)
        'gpt-4o'

        # export ROLLOUT_AGENT_PROMOTE_ON_ERROR=false
        >>> config = load_config()
        >>> print(config.promote_on_error)
        False
    """
    return Config()
