from typing import Optional

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class AwsConfig(BaseSettings):
    """Shared AWS credentials (optional; the default boto3 chain is used otherwise)."""

    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    region: str = "us-east-1"

    model_config = SettingsConfigDict(
        env_prefix="AWS_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class PollyConfig(BaseSettings):
    """Amazon Polly configuration."""

    region: str = "us-east-1"
    default_voice_id: str = "Joanna"
    default_engine: str = "neural"
    output_format: str = "mp3"
    max_text_length: int = Field(default=100_000, ge=1)

    model_config = SettingsConfigDict(
        env_prefix="POLLY_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class UsageConfig(BaseSettings):
    """DynamoDB usage ledger configuration."""

    table_name: str = "tts-reader-usage"
    region: str = "us-east-1"
    retention_days: int = Field(default=90, ge=1)
    summary_days: int = Field(default=30, ge=1)
    default_limit: int = Field(default=100, ge=1)
    recent_requests: int = Field(default=10, ge=0)

    model_config = SettingsConfigDict(
        env_prefix="USAGE_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class SecurityConfig(BaseSettings):
    """Bearer token verification settings.

    With ``jwks_url`` set, ID tokens issued by the managed identity provider
    (e.g. a Cognito user pool) are verified against its published keys;
    otherwise tokens are verified with the shared secret.
    """

    jwt_secret_key: SecretStr = Field(
        default=SecretStr("change-me"),
        validation_alias="JWT_SECRET",
    )
    jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
    jwks_url: Optional[str] = Field(default=None, validation_alias="JWT_JWKS_URL")
    audience: Optional[str] = Field(default=None, validation_alias="JWT_AUDIENCE")
    issuer: Optional[str] = Field(default=None, validation_alias="JWT_ISSUER")
    access_token_expires_minutes: int = Field(
        default=60,
        validation_alias="JWT_EXPIRATION_MINUTES",
        ge=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class ReaderConfig(BaseSettings):
    """Playback client configuration."""

    api_endpoint: str = "http://localhost:8000"
    request_timeout: float = Field(default=30.0, gt=0)
    preferences_path: str = "~/.tts-reader/preferences.json"
    poll_interval: float = Field(default=0.1, gt=0)

    model_config = SettingsConfigDict(
        env_prefix="READER_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


class Settings(BaseSettings):
    """Application settings"""

    app_name: str = "TTS Reader API"
    app_version: str = "1.0.0"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000
    log_file: str = "logs/app.log"

    aws: AwsConfig = Field(default_factory=AwsConfig)

    # Polly
    polly: PollyConfig = Field(default_factory=PollyConfig)

    # DynamoDB usage table
    usage: UsageConfig = Field(default_factory=UsageConfig)

    # Security
    security: SecurityConfig = Field(default_factory=SecurityConfig)

    # Playback client
    reader: ReaderConfig = Field(default_factory=ReaderConfig)

    # CORS
    cors_origins: list[str] = ["*"]
    cors_allow_credentials: bool = True
    cors_allow_methods: list[str] = ["GET", "POST", "OPTIONS"]
    cors_allow_headers: list[str] = [
        "Content-Type",
        "X-Amz-Date",
        "Authorization",
        "X-Api-Key",
        "X-Amz-Security-Token",
    ]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
