# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Academy service configuration.

One settings class per concern, each reading its own environment prefix
(DB_, JWT_, AUTH_, RATE_LIMIT_, REDIS_, CORS_, API_), all gathered under
``Settings``. Values come from the environment and an optional .env file.

The two JWT secrets must differ, token lifetimes are human-readable
durations ("15m", "7d"), and a production process refuses to start while
either secret still has its shipped default.

Example:
    >>> settings = get_settings()
    >>> settings.jwt.access_token_lifetime
    datetime.timedelta(days=7)
"""

from datetime import timedelta
from functools import lru_cache
from typing import Literal, Self

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.utils.datetime import parse_duration

DEFAULT_ACCESS_SECRET = "change-this-in-production"
DEFAULT_REFRESH_SECRET = "change-this-refresh-secret-in-production"

ROLE_NAMES = ("student", "coach", "branch_manager", "system_manager")


class DatabaseSettings(BaseSettings):
    """Relational store configuration.

    The store holds tenants, users, branches and classes. Every tenant shares
    the same schema; isolation is enforced by the repository layer.

    Attributes:
        user: PostgreSQL username.
        password: PostgreSQL password.
        host: Database host address.
        port: Database port number.
        name: Database name.
        url_override: Full SQLAlchemy async URL (DATABASE_URL), wins when set.
        pool_size: Connection pool size.
        max_overflow: Maximum overflow connections.
        echo: Log every SQL statement.
    """

    model_config = SettingsConfigDict(
        env_prefix="DB_",
        extra="ignore",
    )

    user: str = "academy"
    password: SecretStr = SecretStr("academy_password")
    host: str = "localhost"
    port: int = 5432
    name: str = "academy"
    url_override: str | None = Field(
        default=None,
        validation_alias="DATABASE_URL",
    )
    pool_size: int = 20
    max_overflow: int = 10
    echo: bool = False

    @property
    def url(self) -> str:
        """Build the async database URL from components."""
        if self.url_override:
            return self.url_override
        pwd = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{pwd}@{self.host}:{self.port}/{self.name}"


class RedisSettings(BaseSettings):
    """Redis configuration, used as the shared rate-limit counter store.

    Attributes:
        host: Redis server host.
        port: Redis server port.
        password: Redis password.
        database: Redis database number.
    """

    model_config = SettingsConfigDict(
        env_prefix="REDIS_",
        extra="ignore",
    )

    host: str = "localhost"
    port: int = 6379
    password: SecretStr | None = None
    database: int = 0

    @property
    def url(self) -> str:
        """Build the Redis connection URL."""
        if self.password is None:
            return f"redis://{self.host}:{self.port}/{self.database}"
        pwd = self.password.get_secret_value()
        return f"redis://:{pwd}@{self.host}:{self.port}/{self.database}"


class JWTSettings(BaseSettings):
    """JWT authentication configuration.

    Access and refresh tokens are signed with two different secrets so that
    one kind of token can never be verified as the other.

    Attributes:
        secret_key: Secret for signing access tokens.
        refresh_secret_key: Secret for signing refresh tokens.
        algorithm: JWT signing algorithm.
        expires_in: Access token lifetime, human readable (e.g. "7d").
        refresh_expires_in: Refresh token lifetime, human readable.
        issuer: Value of the iss claim.
        audience: Value of the aud claim.
    """

    model_config = SettingsConfigDict(
        env_prefix="JWT_",
        extra="ignore",
    )

    secret_key: SecretStr = SecretStr(DEFAULT_ACCESS_SECRET)
    refresh_secret_key: SecretStr = SecretStr(DEFAULT_REFRESH_SECRET)
    algorithm: str = "HS256"
    expires_in: str = "7d"
    refresh_expires_in: str = "30d"
    issuer: str = "jiu-jitsu-academy-manager"
    audience: str = "jiu-jitsu-academy-users"

    @field_validator("expires_in", "refresh_expires_in")
    @classmethod
    def validate_duration(cls, value: str) -> str:
        """Reject lifetimes that cannot be parsed."""
        parse_duration(value)
        return value

    @model_validator(mode="after")
    def validate_distinct_secrets(self) -> Self:
        """Ensure access and refresh tokens use different secrets.

        Raises:
            ValueError: If both secrets are equal.
        """
        if self.secret_key.get_secret_value() == self.refresh_secret_key.get_secret_value():
            raise ValueError(
                "JWT_SECRET_KEY and JWT_REFRESH_SECRET_KEY must be different."
            )
        return self

    @property
    def access_token_lifetime(self) -> timedelta:
        """Access token lifetime as a timedelta."""
        return parse_duration(self.expires_in)

    @property
    def refresh_token_lifetime(self) -> timedelta:
        """Refresh token lifetime as a timedelta."""
        return parse_duration(self.refresh_expires_in)


class AuthSettings(BaseSettings):
    """Credential lifecycle configuration.

    Attributes:
        bcrypt_rounds: bcrypt cost factor for password hashes.
        password_reset_expire_minutes: Lifetime of password reset tokens.
        tenant_domain_pattern: Regular expression a tenant domain must match.
        registration_roles: Roles a self-registering user may request.
    """

    model_config = SettingsConfigDict(
        env_prefix="AUTH_",
        extra="ignore",
    )

    bcrypt_rounds: int = Field(default=12, ge=4, le=31)
    password_reset_expire_minutes: int = Field(default=60, gt=0)
    tenant_domain_pattern: str = (
        r"^(?=.{1,253}$)([a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z]{2,63}$"
    )
    registration_roles: list[str] = list(ROLE_NAMES)

    @field_validator("registration_roles")
    @classmethod
    def validate_registration_roles(cls, value: list[str]) -> list[str]:
        """Only known role names may be listed."""
        unknown = [role for role in value if role not in ROLE_NAMES]
        if unknown:
            raise ValueError(f"Unknown roles in AUTH_REGISTRATION_ROLES: {unknown}")
        return value


class RateLimitSettings(BaseSettings):
    """Rate limiting configuration.

    Attributes:
        enabled: Whether rate limits are enforced.
        auth_requests_per_minute: Limit for credential endpoints per IP.
        use_redis: Keep counters in Redis instead of process memory.
    """

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        extra="ignore",
    )

    enabled: bool = True
    auth_requests_per_minute: int = 100
    use_redis: bool = False


class CORSSettings(BaseSettings):
    """CORS configuration for API.

    Attributes:
        origins: Comma-separated list of allowed origins.
        allow_credentials: Whether to allow credentials.
        allow_methods: Allowed HTTP methods.
        allow_headers: Allowed HTTP headers.
    """

    model_config = SettingsConfigDict(
        env_prefix="CORS_",
        extra="ignore",
    )

    origins: str = "http://localhost:3000,http://localhost:5173"
    allow_credentials: bool = True
    allow_methods: list[str] = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
    allow_headers: list[str] = ["Content-Type", "Authorization", "X-Requested-With"]

    @property
    def origins_list(self) -> list[str]:
        """Parse origins string into a list."""
        return [origin.strip() for origin in self.origins.split(",") if origin.strip()]


class APISettings(BaseSettings):
    """API server configuration.

    Attributes:
        host: Host to bind to.
        port: Port to listen on.
        workers: Number of worker processes.
        reload: Whether to enable auto-reload.
        prefix: Path prefix for versioned routes.
    """

    model_config = SettingsConfigDict(
        env_prefix="API_",
        extra="ignore",
    )

    host: str = "0.0.0.0"
    port: int = 5000
    workers: int = 2
    reload: bool = False
    prefix: str = "/api/v1"


class Settings(BaseSettings):
    """Main application settings aggregating all subsettings.

    Use get_settings() to obtain a cached singleton instance.

    Attributes:
        environment: Current environment (development, staging, production).
        debug: Enable debug mode.
        log_level: Logging level.
        database: Relational store settings.
        redis: Redis settings.
        jwt: JWT authentication settings.
        auth: Credential lifecycle settings.
        rate_limit: Rate limiting settings.
        cors: CORS settings.
        api: API server settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Environment
    environment: Literal["development", "test", "staging", "production"] = "development"
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # Subsettings - loaded with their own env prefixes
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    jwt: JWTSettings = Field(default_factory=JWTSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    cors: CORSSettings = Field(default_factory=CORSSettings)
    api: APISettings = Field(default_factory=APISettings)

    @model_validator(mode="after")
    def validate_production_settings(self) -> Self:
        """Validate that production settings are properly configured.

        Raises:
            ValueError: If running in production with insecure defaults.
        """
        if self.environment == "production":
            if self.jwt.secret_key.get_secret_value() == DEFAULT_ACCESS_SECRET:
                raise ValueError(
                    "JWT secret key must be changed from default in production. "
                    "Set JWT_SECRET_KEY environment variable."
                )
            if self.jwt.refresh_secret_key.get_secret_value() == DEFAULT_REFRESH_SECRET:
                raise ValueError(
                    "JWT refresh secret key must be changed from default in production. "
                    "Set JWT_REFRESH_SECRET_KEY environment variable."
                )
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings once per process. See clear_settings_cache()."""
    return Settings()


def clear_settings_cache() -> None:
    """Forget the cached settings so the next call re-reads the environment."""
    get_settings.cache_clear()
