"""
FeedPoster Configuration System
===============================

Configuration management with a YAML file, environment variables and
Pydantic models. Precedence, highest first: environment variables
(``FEEDPOSTER_`` prefix, ``__`` for nesting), ``.env`` file, YAML file,
Field defaults.
"""

from enum import Enum
from pathlib import Path
from typing import List, Optional, Any, Dict

import yaml
from pydantic import BaseModel, Field, field_validator, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..utils.exceptions import ConfigurationError, ErrorCode

DEFAULT_CONFIG_FILE = "feedposter.yaml"


class LogLevel(str, Enum):
    """Available log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class CheckpointPolicy(str, Enum):
    """How far a feed's checkpoint advances after a publishing batch."""
    SELECTED = "selected"      # newest item that passed deduplication
    PUBLISHED = "published"    # stop before the oldest failed publish


def _require_http_url(value: str) -> str:
    value = value.strip()
    if not value.lower().startswith(("http://", "https://")):
        raise ValueError(f"URL must start with http:// or https://: {value!r}")
    return value


class HttpAuthSettings(BaseModel):
    """HTTP basic-auth credentials for blogs behind a protected endpoint."""
    username: str = Field(..., min_length=1)
    password: str = Field(default="")


class BlogSettings(BaseModel):
    """Target blog (WordPress XML-RPC) configuration."""
    xmlrpc_url: str = Field(..., description="XML-RPC endpoint, e.g. https://blog.example.com/xmlrpc.php")
    username: str = Field(..., min_length=1, description="Blog account used for posting")
    password: str = Field(..., description="Blog account password")
    blog_id: int = Field(default=1, ge=0, description="Blog id for multi-site installs")
    verify_tls: bool = Field(default=True, description="Verify the blog's TLS certificate")
    proxy: Optional[str] = Field(default=None, description="HTTP(S) proxy URL for blog calls")
    timeout: int = Field(default=30, ge=1, le=300, description="Blog request timeout in seconds")
    http_auth: Optional[HttpAuthSettings] = Field(default=None, description="Basic-auth credentials")
    default_categories: List[str] = Field(
        default_factory=lambda: ["Uncategorized"],
        description="Categories added to every post before the matched ones",
    )
    post_status: str = Field(default="publish", description="Status for new posts (publish, draft, ...)")

    @field_validator('xmlrpc_url')
    @classmethod
    def validate_xmlrpc_url(cls, v):
        return _require_http_url(v)


class FeedSettings(BaseModel):
    """A configured RSS source."""
    id: str = Field(..., min_length=1, description="Unique key into the checkpoint store")
    name: str = Field(..., min_length=1, description="Display name used in post attribution")
    url: str = Field(..., description="Feed URL")
    conn_timeout: Optional[int] = Field(default=None, ge=1, le=300, description="Per-feed fetch timeout override")

    model_config = {"frozen": True}

    @field_validator('id', 'name')
    @classmethod
    def strip_text(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v

    @field_validator('url')
    @classmethod
    def validate_url(cls, v):
        return _require_http_url(v)

    def effective_timeout(self, default: int) -> int:
        """Timeout for this feed, falling back to the global one."""
        return self.conn_timeout or default


class DatabaseSettings(BaseModel):
    """Checkpoint database configuration."""
    path: str = Field(default="data/feeds_data.db", description="SQLite database file path")
    pool_size: int = Field(default=2, ge=1, le=20, description="Connection pool size")


class LoggingSettings(BaseModel):
    """Logging configuration."""
    level: LogLevel = Field(default=LogLevel.INFO, description="Global log level")
    file_path: Optional[str] = Field(default="logs/feedposter.log", description="Log file path")
    max_file_size_mb: int = Field(default=10, ge=1, le=100, description="Max log file size in MB")
    backup_count: int = Field(default=5, ge=1, le=20, description="Number of log backup files")
    structured_logging: bool = Field(default=False, description="Use structured JSON logging on the console")
    console_logging: bool = Field(default=True, description="Enable console logging")


class ProcessingSettings(BaseModel):
    """Pipeline behaviour."""
    checkpoint_policy: CheckpointPolicy = Field(
        default=CheckpointPolicy.SELECTED,
        description=(
            "selected: advance past every new item; published: stop before the oldest failed "
            "publish so it is retried, re-posting newer items of that batch that already went out"
        ),
    )
    advance_on_no_match: bool = Field(
        default=False,
        description="Advance the checkpoint when new items exist but none match the taxonomy",
    )
    dry_run: bool = Field(default=False, description="Log posts instead of publishing; never write checkpoints")


class FeedPosterSettings(BaseSettings):
    """Main application settings."""

    blog: BlogSettings
    feeds: List[FeedSettings] = Field(default_factory=list)
    conn_timeout: int = Field(default=30, ge=1, le=300, description="Default feed fetch timeout in seconds")
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    processing: ProcessingSettings = Field(default_factory=ProcessingSettings)

    app_name: str = Field(default="FeedPoster", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_nested_delimiter="__",
        env_prefix="FEEDPOSTER_",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        # YAML values arrive as init kwargs; let the environment override them
        return env_settings, dotenv_settings, init_settings, file_secret_settings

    @field_validator('feeds')
    @classmethod
    def validate_unique_feed_ids(cls, v):
        seen = set()
        duplicates = []
        for feed in v:
            if feed.id in seen:
                duplicates.append(feed.id)
            seen.add(feed.id)
        if duplicates:
            raise ValueError(f"Duplicate feed ids: {', '.join(sorted(set(duplicates)))}")
        return v

    def validate_configuration(self) -> None:
        """Validate paths that are only checkable at runtime."""
        errors = []

        try:
            db_path = Path(self.database.path)
            db_path.parent.mkdir(parents=True, exist_ok=True)
        except Exception as e:
            errors.append(f"Invalid database path: {e}")

        if self.logging.file_path:
            try:
                log_path = Path(self.logging.file_path)
                log_path.parent.mkdir(parents=True, exist_ok=True)
            except Exception as e:
                errors.append(f"Invalid log file path: {e}")

        if errors:
            raise ConfigurationError(
                f"Configuration validation failed: {'; '.join(errors)}",
                error_code=ErrorCode.CONFIG_INVALID
            )

    def get_feed(self, feed_id: str) -> Optional[FeedSettings]:
        """Look up a configured feed by id."""
        for feed in self.feeds:
            if feed.id == feed_id:
                return feed
        return None

    def get_effective_log_level(self) -> str:
        """Get effective log level considering debug mode."""
        if self.debug:
            return "DEBUG"
        return self.logging.level.value


def _read_yaml(config_file: Path) -> Dict[str, Any]:
    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Cannot parse {config_file}: {e}",
            error_code=ErrorCode.CONFIG_PARSE_ERROR,
        ) from e
    except OSError as e:
        raise ConfigurationError(
            f"Cannot read {config_file}: {e}",
            error_code=ErrorCode.CONFIG_MISSING,
        ) from e

    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Top level of {config_file} must be a mapping",
            error_code=ErrorCode.CONFIG_PARSE_ERROR,
        )
    return data


def load_settings(config_path: Optional[str] = None) -> FeedPosterSettings:
    """Load settings from the YAML file and the environment.

    Args:
        config_path: YAML file to read. When omitted, ``feedposter.yaml`` in
            the working directory is used if present.

    Returns:
        Loaded and validated settings

    Raises:
        ConfigurationError: If the file is missing, unparsable or invalid
    """
    from dotenv import load_dotenv
    load_dotenv()

    data: Dict[str, Any] = {}
    if config_path:
        config_file = Path(config_path)
        if not config_file.is_file():
            raise ConfigurationError(
                f"Configuration file not found: {config_file}",
                config_key="config",
                error_code=ErrorCode.CONFIG_MISSING,
            )
        data = _read_yaml(config_file)
    elif Path(DEFAULT_CONFIG_FILE).is_file():
        data = _read_yaml(Path(DEFAULT_CONFIG_FILE))

    try:
        settings = FeedPosterSettings(**data)
        settings.validate_configuration()
        return settings

    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid configuration: {e}",
            error_code=ErrorCode.CONFIG_INVALID
        ) from e


def create_example_config() -> str:
    """Render an example YAML configuration."""
    example = {
        "blog": {
            "xmlrpc_url": "https://blog.example.com/xmlrpc.php",
            "username": "poster",
            "password": "change-me",
            "verify_tls": True,
            "http_auth": None,
            "default_categories": ["Uncategorized"],
            "post_status": "publish",
        },
        "conn_timeout": 30,
        "feeds": [
            {
                "id": "example-news",
                "name": "Example News",
                "url": "https://news.example.com/rss.xml",
            },
            {
                "id": "slow-feed",
                "name": "Slow Feed",
                "url": "https://slow.example.org/feed",
                "conn_timeout": 60,
            },
        ],
        "database": {"path": "data/feeds_data.db"},
        "logging": {"level": "INFO", "file_path": "logs/feedposter.log"},
        "processing": {
            "checkpoint_policy": CheckpointPolicy.SELECTED.value,
            "advance_on_no_match": False,
        },
    }
    return yaml.safe_dump(example, default_flow_style=False, sort_keys=False)


# Global settings instance
_settings: Optional[FeedPosterSettings] = None


def get_settings(config_path: Optional[str] = None, reload: bool = False) -> FeedPosterSettings:
    """Get global settings instance (singleton pattern).

    Args:
        config_path: YAML file to load on first use or reload
        reload: Force reload of settings

    Returns:
        Global settings instance
    """
    global _settings

    if _settings is None or reload:
        _settings = load_settings(config_path)

    return _settings
