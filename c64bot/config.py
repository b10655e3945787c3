"""Configuration with JSON file, secrets.yml, and env variable support.

Everything the bot needs at runtime lives on ``BotConfig``: the chat trigger,
accepted file types, object-store credentials, emulator playback flags,
preview generation timeouts and the retention policy.
"""

import json
import os
from pathlib import Path

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from c64bot.models.domain import EmulatorLaunchConfig, RetentionPolicy


def _find_repo_root(*, start: Path) -> Path:
    """Best-effort repository root discovery.

    Root detection is heuristic but stable:
    - first directory containing `pyproject.toml`
    - otherwise fall back to the current working directory
    """

    try:
        start = start.resolve()
        for p in [start, *start.parents]:
            if (p / "pyproject.toml").exists():
                return p
    except OSError:
        pass

    return Path.cwd()


def _flatten_secrets_mapping(secrets: dict) -> dict:
    """Flatten secrets mapping into BotConfig-compatible keys.

    Converts nested YAML structure to flat config keys:
        telegram.bot_token -> telegram_bot_token
        s3.secret_key -> s3_secret_key
    """
    flat = {}
    for section, values in secrets.items():
        if isinstance(values, dict):
            for key, value in values.items():
                flat[f"{section}_{key}"] = value
        else:
            flat[section] = values

    return flat


def _load_secrets(secrets_path: Path) -> dict:
    """Load and flatten secrets from YAML file."""
    if not secrets_path.exists():
        return {}

    with open(secrets_path) as f:
        secrets = yaml.safe_load(f) or {}

    if not isinstance(secrets, dict):
        return {}

    return _flatten_secrets_mapping(secrets)


class BotConfig(BaseSettings):
    """Configuration with JSON file + secrets.yml + env var support.

    Load order (later overrides earlier):
    1. config.json - base configuration
    2. secrets.yml - sensitive values (bot token, S3 credentials)
    3. Environment variables - runtime overrides

    Prefix: C64BOT_ (e.g., C64BOT_TELEGRAM_BOT_TOKEN)
    """

    model_config = SettingsConfigDict(
        env_prefix="C64BOT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Telegram settings
    telegram_bot_token: str = Field(default="")

    # Command handling
    command_prefix: str = Field(
        default="c64",
        description="Trigger text that opts a plain message into command handling.",
    )
    accepted_extensions: list[str] = Field(
        default_factory=lambda: [".prg", ".d64"],
        description="Program file and disk-image extensions the pipeline accepts.",
    )
    delete_source_message: bool = Field(
        default=True,
        description="Delete the submitter's message after a fully successful run.",
    )
    download_timeout_seconds: float = Field(default=30.0)

    # Object storage (S3 / MinIO)
    s3_endpoint_url: str | None = Field(
        default="http://minio:9000",
        description="S3 endpoint. Set to null to talk to AWS S3 directly.",
    )
    s3_access_key: str = Field(default="minioadmin")
    s3_secret_key: str = Field(default="minioadmin")
    s3_region: str = Field(default="us-east-1")
    s3_bucket: str = Field(default="c64files")
    public_host: str = Field(
        default="http://localhost:3000",
        description="Base URL used to build public links to stored objects.",
    )

    # Emulator front-end link
    emulator_base_url: str = Field(default="https://vc64web.github.io/")
    emulator_open_roms: bool = Field(default=True)
    emulator_border: bool = Field(default=False)
    emulator_autoload: bool = Field(default=True)
    emulator_wide: bool = Field(default=False)

    # Preview generation
    screenshot_enabled: bool = Field(default=True)
    screenshot_delay_ms: int = Field(
        default=2000,
        description="Settle delay after the emulator exits, before checking for the image.",
    )
    emulator_timeout_seconds: float = Field(
        default=10.0,
        description="Inner deadline around the emulator subprocess itself.",
    )
    artifact_ceiling_seconds: float = Field(
        default=15.0,
        description="Outer wall-clock ceiling the pipeline allows for preview generation.",
    )
    emulator_binary: str = Field(default="x64")
    xvfb_binary: str = Field(default="Xvfb")
    xvfb_display_range_start: int = Field(default=100)
    xvfb_display_range_size: int = Field(default=100)
    emulator_limit_cycles: int = Field(
        default=5_000_000,
        description="Cycles VICE runs before exiting and writing the exit screenshot.",
    )
    default_screenshot_url: str = Field(
        default="https://upload.wikimedia.org/wikipedia/commons/thumb/2/2c/Commodore_64_logo.svg/384px-Commodore_64_logo.svg.png",
    )

    # Retention policy
    retention_max_count: int = Field(default=100)
    retention_max_age_days: int = Field(default=7)
    retention_interval_seconds: int = Field(default=24 * 60 * 60)
    retention_sweep_screenshots: bool = Field(default=True)

    # Error log file
    error_log_file_enabled: bool = Field(default=True)
    error_log_file_path: str = Field(default="./logs/errors.log")
    error_log_level: str = Field(default="WARNING")
    error_log_max_bytes: int = Field(default=10_485_760)
    error_log_backup_count: int = Field(default=5)

    # API settings
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=3000)
    health_stall_seconds: int = Field(
        default=180,
        description="Report \"stalled\" when pipelines are in flight but none progressed for this long.",
    )

    def emulator_launch_config(self, file_url: str) -> EmulatorLaunchConfig:
        """Build the playback flags for one stored program."""
        return EmulatorLaunchConfig(
            open_roms=self.emulator_open_roms,
            border=self.emulator_border,
            url=file_url,
            autoload=self.emulator_autoload,
            wide=self.emulator_wide,
        )

    @property
    def retention_policy(self) -> RetentionPolicy:
        return RetentionPolicy(
            max_count=self.retention_max_count,
            max_age_days=self.retention_max_age_days,
        )

    @property
    def normalized_extensions(self) -> tuple[str, ...]:
        """Accepted extensions, lower-cased and dot-prefixed."""
        out = []
        for ext in self.accepted_extensions:
            e = ext.strip().lower()
            if not e:
                continue
            out.append(e if e.startswith(".") else f".{e}")
        return tuple(out)

    @classmethod
    def from_json_file(
        cls,
        config_path: str = "config.json",
        secrets_path: str = "secrets.yml",
    ) -> "BotConfig":
        """Load config from JSON + secrets.yml with env var overrides.

        Args:
            config_path: Path to JSON config file.
            secrets_path: Path to secrets YAML file.

        Returns:
            Configured BotConfig instance.
        """
        config_data = {}

        json_path = Path(config_path)
        if json_path.exists():
            with open(json_path) as f:
                config_data = json.load(f)

        # Merge secrets (overrides JSON values)
        secrets = _load_secrets(Path(secrets_path))
        config_data.update(secrets)

        # Remove keys that an env var overrides so pydantic-settings wins
        env_prefix = "C64BOT_"
        for key in [k for k in config_data if f"{env_prefix}{k.upper()}" in os.environ]:
            del config_data[key]

        return cls(**config_data)
