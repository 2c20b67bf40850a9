"""
Pydantic-based configuration models for the storefront server.

Each concern has its own BaseSettings model and environment prefix; AppConfig
aggregates them and additionally reads a local .env file.
"""

import json
from typing import Annotated, Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode

from ..structured_logging.enhanced_logging_config import get_logger

logger = get_logger(__name__)

# Fixed chat colour palette; userColor falls back to a uniform draw from it
DEFAULT_COLOR_PALETTE = [
    "#FF6B6B",
    "#4ECDC4",
    "#45B7D1",
    "#FFA5A5",
    "#A3D39C",
    "#7D70BA",
    "#5B8C85",
    "#E84855",
    "#3185FC",
    "#F9C80E",
    "#FF6F61",
    "#6A0572",
    "#AB83A1",
    "#5C80BC",
    "#F45B69",
    "#2EC4B6",
    "#E71D36",
    "#FF9F1C",
    "#011627",
    "#2A9D8F",
]


def _parse_env_list(candidate: Any) -> list[str]:
    """Parse a string from the environment as JSON list or CSV."""
    if candidate is None:
        return []
    if isinstance(candidate, list):
        return [str(item).strip() for item in candidate if str(item).strip()]
    s = str(candidate).strip()
    if not s:
        return []
    try:
        loaded = json.loads(s)
        if isinstance(loaded, list):
            return [str(item).strip() for item in loaded if str(item).strip()]
    except json.JSONDecodeError:
        pass
    return [item.strip() for item in s.split(",") if item.strip()]


class ServerConfig(BaseSettings):
    """Server network configuration."""

    host: str = Field(default="127.0.0.1", description="Server bind address")
    port: int = Field(default=3000, description="Server port")

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port is in valid range."""
        if not 1 <= v <= 65535:
            logger.error("Invalid server port", port=v, valid_range="1-65535")
            raise ValueError("Port must be between 1 and 65535")
        return v

    model_config = {"env_prefix": "SERVER_", "case_sensitive": False, "extra": "ignore"}


class DatabaseConfig(BaseSettings):
    """Database configuration."""

    url: str = Field(default="sqlite+aiosqlite:///./storefront.db", description="Primary database URL")

    # Connection pool configuration (ignored for SQLite)
    pool_size: int = Field(default=5, description="Number of connections to maintain in pool")
    max_overflow: int = Field(default=10, description="Additional connections beyond pool_size")
    pool_timeout: int = Field(default=30, description="Seconds to wait for connection from pool")

    @field_validator("url")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL and normalise PostgreSQL URLs to the asyncpg driver."""
        if not v:
            logger.error("Database URL validation failed - empty URL")
            raise ValueError("Database URL cannot be empty")
        if v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        if not (v.startswith("postgresql") or v.startswith("sqlite")):
            logger.error("Database URL validation failed - invalid protocol", url_preview=v[:50])
            raise ValueError("Database URL must start with 'postgresql' or 'sqlite'")
        return v

    @field_validator("pool_size", "max_overflow", "pool_timeout")
    @classmethod
    def validate_pool_config(cls, v: int) -> int:
        """Validate pool configuration values are positive."""
        if v < 1:
            raise ValueError("Pool configuration values must be at least 1")
        return v

    model_config = {"env_prefix": "DATABASE_", "case_sensitive": False, "extra": "ignore"}


class SecurityConfig(BaseSettings):
    """Token signing configuration."""

    jwt_secret: str = Field(..., description="Shared secret used to sign and verify access tokens (required)")
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    access_token_expire_minutes: int = Field(default=60, description="Access token lifetime in minutes")

    @field_validator("jwt_secret")
    @classmethod
    def validate_jwt_secret(cls, v: str) -> str:
        """Reject empty or trivially short secrets."""
        if len(v) < 16:
            logger.error("JWT secret validation failed - too short", secret_length=len(v), minimum_length=16)
            raise ValueError("JWT secret must be at least 16 characters")
        return v

    @field_validator("access_token_expire_minutes")
    @classmethod
    def validate_expiry(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Token lifetime must be at least 1 minute")
        return v

    model_config = {"env_prefix": "STOREFRONT_", "case_sensitive": False, "extra": "ignore"}


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    environment: str = Field(default="local", description="Logging environment")
    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="key_value", description="Log format")
    log_base: str = Field(default="logs", description="Base log directory")
    disable_logging: bool = Field(default=False, description="Disable file logging")

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate logging environment."""
        valid_environments = ["local", "unit_test", "production"]
        if v not in valid_environments:
            logger.error("Invalid logging environment", environment=v, valid_environments=valid_environments)
            raise ValueError(f"Environment must be one of {valid_environments}, got '{v}'")
        return v

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}, got '{v}'")
        return v_upper

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        """Validate log format."""
        valid_formats = ["json", "console", "key_value"]
        if v not in valid_formats:
            raise ValueError(f"Log format must be one of {valid_formats}, got '{v}'")
        return v

    model_config = {"env_prefix": "LOGGING_", "case_sensitive": False, "extra": "ignore"}

    def to_legacy_dict(self) -> dict:
        """Convert to the dict format expected by setup_enhanced_logging."""
        return {
            "environment": self.environment,
            "level": self.level,
            "format": self.format,
            "log_base": self.log_base,
            "disable_logging": self.disable_logging,
        }


class ChatConfig(BaseSettings):
    """Real-time chat configuration."""

    typing_expiry_ms: int = Field(default=3000, description="Server-side typing indicator expiry")
    client_typing_throttle_ms: int = Field(default=800, description="Minimum gap between client typing emits")
    client_stop_typing_ms: int = Field(default=1500, description="Client idle time before stop typing")
    history_limit: int = Field(default=50, description="Number of messages replayed as history")
    max_message_length: int = Field(default=2000, description="Maximum chat message length in characters")
    max_frame_bytes: int = Field(default=16 * 1024, description="Maximum inbound WebSocket frame size")
    color_palette: Annotated[list[str], NoDecode] = Field(default_factory=lambda: list(DEFAULT_COLOR_PALETTE))

    @field_validator(
        "typing_expiry_ms",
        "client_typing_throttle_ms",
        "client_stop_typing_ms",
        "history_limit",
        "max_message_length",
        "max_frame_bytes",
    )
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Validate chat limits are positive."""
        if v < 1:
            raise ValueError("Chat limits must be at least 1")
        return v

    @field_validator("color_palette", mode="before")
    @classmethod
    def parse_palette(cls, value: object) -> list[str]:
        palette = _parse_env_list(value)
        if not palette:
            raise ValueError("Color palette cannot be empty")
        return palette

    model_config = {"env_prefix": "CHAT_", "case_sensitive": False, "extra": "ignore"}

    @property
    def typing_expiry_seconds(self) -> float:
        return self.typing_expiry_ms / 1000


class CORSConfig(BaseSettings):
    """CORS configuration."""

    allow_origins: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"]
    )
    allow_methods: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
    )
    allow_headers: Annotated[list[str], NoDecode] = Field(default_factory=lambda: ["Content-Type", "Authorization"])
    allow_credentials: bool = Field(default=True)

    @field_validator("allow_origins", "allow_methods", "allow_headers", mode="before")
    @classmethod
    def parse_list(cls, value: object) -> list[str]:
        return _parse_env_list(value)

    model_config = {"env_prefix": "CORS_", "case_sensitive": False, "extra": "ignore"}


class AppConfig(BaseSettings):
    """
    Composite application configuration.

    This is the main configuration class that aggregates all other configs.
    Access via get_config() singleton function.
    """

    server: ServerConfig = Field(default_factory=ServerConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)  # type: ignore[arg-type]
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    chat: ChatConfig = Field(default_factory=ChatConfig)
    cors: CORSConfig = Field(default_factory=CORSConfig)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "case_sensitive": False, "extra": "ignore"}

    def to_legacy_dict(self) -> dict:
        """
        Convert to a plain dict.

        Secrets are deliberately omitted; the dict is used for logging setup
        and configuration signatures.
        """
        return {
            "host": self.server.host,
            "port": self.server.port,
            "database_url": self.database.url,
            "logging": self.logging.to_legacy_dict(),
            "chat": {
                "typing_expiry_ms": self.chat.typing_expiry_ms,
                "client_typing_throttle_ms": self.chat.client_typing_throttle_ms,
                "client_stop_typing_ms": self.chat.client_stop_typing_ms,
                "history_limit": self.chat.history_limit,
            },
            "cors": {
                "allow_origins": self.cors.allow_origins,
                "allow_methods": self.cors.allow_methods,
                "allow_headers": self.cors.allow_headers,
                "allow_credentials": self.cors.allow_credentials,
            },
        }
