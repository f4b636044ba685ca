"""Configuration management for PixelMuse.

This module provides centralized configuration management using Pydantic Settings.
All configuration is loaded from environment variables with the PIXELMUSE_ prefix,
allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (PIXELMUSE_* prefix)
2. .env file in the project root
3. Default values defined in PixelmuseConfig

Example .env file:
    PIXELMUSE_DEFAULT_MODEL=dall-e-3
    PIXELMUSE_REQUEST_TIMEOUT=90
    PIXELMUSE_BATCH_CONCURRENCY=4
    PIXELMUSE_SETTINGS_FILE=~/.pixelmuse/settings.json

Global Configuration Instance
------------------------------
A global `config` instance is created automatically at module import time.
This ensures a single source of truth for all configuration values across
the application.

Usage Example
-------------
    from pixelmuse.core.config import config

    print(config.default_model)
    print(config.settings_file)

Credentials
-----------
Provider API keys are NOT part of this configuration. They are user-supplied
and live in the settings file managed by
:class:`~pixelmuse.core.credentials.CredentialStore`, which is passed
explicitly to the code that needs it.

See Also
--------
- PixelmuseConfig: Full configuration class documentation
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class PixelmuseConfig(BaseSettings):
    """Main configuration for PixelMuse.

    Values are loaded from environment variables with the PIXELMUSE_ prefix,
    with fallback to defaults defined here.

    Attributes
    ----------
    Model Settings:
        default_model : str
            Registry-wide default model id
        batch_concurrency : int | None
            Maximum number of batch units in flight (None = unbounded)

    Provider Settings:
        openai_base_url : str
            Base URL of the OpenAI images API
        stability_base_url : str
            Base URL of the Stability AI REST API
        request_timeout : float
            Timeout in seconds for one provider round-trip
        gpt_image_output_compression : int
            Output compression (0-100) forwarded to gpt-image-1
        stability_cfg_scale : float
            Classifier-free guidance scale for Stability engines
        stability_steps : int | None
            Diffusion steps for Stability engines (None = per-engine default)

    Storage:
        settings_file : Path
            JSON file holding user-supplied provider API keys
        outputs_dir : Path
            Directory generated images are saved to

    Server Settings:
        server_host : str
            Server bind address
        server_port : int
            Server port (1024-65535)
        log_level : str
            Root logging level used by the CLI entry point

    Notes
    -----
    - The settings file's parent directory and outputs_dir are created automatically
    - Configuration is immutable after initialization
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PIXELMUSE_",
        case_sensitive=False,
    )

    # Model settings
    default_model: str = Field(
        default="gpt-image-1",
        description="Default model id (must exist in the model registry)",
    )
    batch_concurrency: int | None = Field(
        default=None,
        description="Maximum concurrent batch units (unset for no cap)",
        ge=1,
    )

    # Provider endpoints
    openai_base_url: str = Field(
        default="https://api.openai.com/v1",
        description="OpenAI API base URL",
    )
    stability_base_url: str = Field(
        default="https://api.stability.ai/v1",
        description="Stability AI API base URL",
    )
    request_timeout: float = Field(
        default=120.0,
        description="Timeout in seconds for a single provider request",
        ge=1,
        le=600,
    )

    # Provider-specific generation settings
    gpt_image_output_compression: int = Field(default=100, ge=0, le=100)
    stability_cfg_scale: float = Field(default=7.0, ge=0, le=35)
    stability_steps: int | None = Field(default=None, ge=10, le=50)

    # Paths
    settings_file: Path = Field(
        default=Path("settings.json"),
        description="JSON settings file holding provider API keys",
    )
    outputs_dir: Path = Field(
        default=Path("outputs"),
        description="Directory generated images are saved to",
    )

    # Server settings
    server_host: str = Field(
        default="127.0.0.1",
        description="Server bind address (local-only by default)",
    )
    server_port: int = Field(
        default=7870,
        description="Server port",
        ge=1024,
        le=65535,
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level for the CLI entry point",
    )

    def __init__(self, **kwargs):
        """Initialize configuration and create the settings directory.

        Args:
            **kwargs: Configuration overrides (typically from environment variables)
        """
        super().__init__(**kwargs)

        self.settings_file = self.settings_file.expanduser()
        self.outputs_dir = self.outputs_dir.expanduser()

        # Ensure required directories exist
        self.settings_file.parent.mkdir(parents=True, exist_ok=True)
        self.outputs_dir.mkdir(parents=True, exist_ok=True)


# Global configuration instance
# Loads values from environment variables (PIXELMUSE_* prefix) and .env file.
config = PixelmuseConfig()
