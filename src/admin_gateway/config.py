import hashlib
from enum import Enum
from typing import Any, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    # General App settings
    ENVIRONMENT: Environment = Field(
        Environment.DEVELOPMENT, alias="ADMIN_GATEWAY_ENVIRONMENT"
    )
    LOGGING_LEVEL: str = Field("INFO", alias="ADMIN_GATEWAY_LOGGING_LEVEL")
    ROOT_PATH: str = Field("", alias="ADMIN_GATEWAY_ROOT_PATH")

    # Database Configuration
    DATABASE_URL: str = Field(..., alias="ADMIN_GATEWAY_DATABASE_URL")

    # Supabase Configuration
    SUPABASE_URL: str = Field(..., alias="ADMIN_GATEWAY_SUPABASE_URL")
    SUPABASE_ANON_KEY: str = Field(..., alias="ADMIN_GATEWAY_SUPABASE_ANON_KEY")
    SUPABASE_SERVICE_ROLE_KEY: str = Field(
        ..., alias="ADMIN_GATEWAY_SUPABASE_SERVICE_ROLE_KEY"
    )

    # Mail relay
    MAIL_USERNAME: str = Field(..., alias="ADMIN_GATEWAY_MAIL_USERNAME")
    MAIL_PASSWORD: Optional[str] = Field(None, alias="ADMIN_GATEWAY_MAIL_PASSWORD")
    MAIL_SMTP_HOST: str = Field("smtp.gmail.com", alias="ADMIN_GATEWAY_MAIL_SMTP_HOST")
    MAIL_SMTP_PORT: int = Field(465, alias="ADMIN_GATEWAY_MAIL_SMTP_PORT")
    MAIL_CONTACT_INBOX: Optional[str] = Field(
        None, alias="ADMIN_GATEWAY_MAIL_CONTACT_INBOX"
    )
    OAUTH_CLIENT_ID: Optional[str] = Field(None, alias="ADMIN_GATEWAY_OAUTH_CLIENTID")
    OAUTH_CLIENT_SECRET: Optional[str] = Field(
        None, alias="ADMIN_GATEWAY_OAUTH_CLIENT_SECRET"
    )
    OAUTH_REFRESH_TOKEN: Optional[str] = Field(
        None, alias="ADMIN_GATEWAY_OAUTH_REFRESH_TOKEN"
    )
    OAUTH_TOKEN_URI: str = Field(
        "https://oauth2.googleapis.com/token", alias="ADMIN_GATEWAY_OAUTH_TOKEN_URI"
    )

    # Redirects
    VERIFICATION_REDIRECT_BASE_URL: str = Field(
        "http://localhost:3000/verify-email/",
        alias="ADMIN_GATEWAY_VERIFICATION_REDIRECT_BASE_URL",
    )
    ADMIN_LOGIN_URL: str = Field(
        "http://localhost:3000/", alias="ADMIN_GATEWAY_ADMIN_LOGIN_URL"
    )

    # Verification tokens
    VERIFICATION_TOKEN_TTL_MINUTES: int = Field(
        60 * 24, alias="ADMIN_GATEWAY_VERIFICATION_TOKEN_TTL_MINUTES"
    )  # 1 day
    VERIFICATION_INVALIDATE_PREVIOUS: bool = Field(
        True, alias="ADMIN_GATEWAY_VERIFICATION_INVALIDATE_PREVIOUS"
    )

    # Login
    LOGIN_VERIFY_PASSWORD: bool = Field(
        True, alias="ADMIN_GATEWAY_LOGIN_VERIFY_PASSWORD"
    )

    # PayFast
    PAYFAST_MERCHANT_ID: Optional[str] = Field(
        None, alias="ADMIN_GATEWAY_PAYFAST_MERCHANT_ID"
    )
    PAYFAST_MERCHANT_KEY: Optional[str] = Field(
        None, alias="ADMIN_GATEWAY_PAYFAST_MERCHANT_KEY"
    )
    PAYFAST_PASSPHRASE: Optional[str] = Field(
        None, alias="ADMIN_GATEWAY_PAYFAST_PASSPHRASE"
    )
    PAYFAST_SIGNATURE_SECRET: str = Field(
        ..., alias="ADMIN_GATEWAY_PAYFAST_SIGNATURE_SECRET"
    )
    PAYFAST_SIGNATURE_ALGORITHM: str = Field(
        "md5", alias="ADMIN_GATEWAY_PAYFAST_SIGNATURE_ALGORITHM"
    )
    PAYFAST_PROCESS_URL: str = Field(
        "https://sandbox.payfast.co.za/eng/process",
        alias="ADMIN_GATEWAY_PAYFAST_PROCESS_URL",
    )
    PAYFAST_RETURN_URL: Optional[str] = Field(
        None, alias="ADMIN_GATEWAY_PAYFAST_RETURN_URL"
    )
    PAYFAST_CANCEL_URL: Optional[str] = Field(
        None, alias="ADMIN_GATEWAY_PAYFAST_CANCEL_URL"
    )
    PAYFAST_NOTIFY_URL: Optional[str] = Field(
        None, alias="ADMIN_GATEWAY_PAYFAST_NOTIFY_URL"
    )
    PAYFAST_ITEM_NAME: str = Field(
        "Premium Courses", alias="ADMIN_GATEWAY_PAYFAST_ITEM_NAME"
    )
    PAYFAST_AMOUNT: str = Field("100.00", alias="ADMIN_GATEWAY_PAYFAST_AMOUNT")
    SUBSCRIPTION_PERIOD_MONTHS: int = Field(
        3, alias="ADMIN_GATEWAY_SUBSCRIPTION_PERIOD_MONTHS"
    )

    # Outbound calls
    EXTERNAL_CALL_TIMEOUT_SECONDS: float = Field(
        10.0, alias="ADMIN_GATEWAY_EXTERNAL_CALL_TIMEOUT_SECONDS"
    )

    # Rate Limiting
    RATE_LIMIT_LOGIN: str = Field("5/minute", alias="ADMIN_GATEWAY_RATE_LIMIT_LOGIN")
    RATE_LIMIT_PASSWORD_RESET: str = Field(
        "3/minute", alias="ADMIN_GATEWAY_RATE_LIMIT_PASSWORD_RESET"
    )
    RATE_LIMIT_EMAIL: str = Field("5/minute", alias="ADMIN_GATEWAY_RATE_LIMIT_EMAIL")
    RATE_LIMIT_GENERAL: str = Field(
        "100/minute", alias="ADMIN_GATEWAY_RATE_LIMIT_GENERAL"
    )

    @field_validator("PAYFAST_SIGNATURE_ALGORITHM")
    def validate_signature_algorithm(cls, v: str, info: Any) -> str:
        if v.lower() not in hashlib.algorithms_guaranteed:
            raise ValueError(f"Unsupported signature algorithm: {v}")
        # HMAC needs a fixed-length digest; the shake_* XOFs report size 0.
        if hashlib.new(v.lower()).digest_size == 0:
            raise ValueError(f"Signature algorithm {v} has no fixed digest size")
        return v.lower()

    @property
    def mail_uses_oauth2(self) -> bool:
        return all(
            [self.OAUTH_CLIENT_ID, self.OAUTH_CLIENT_SECRET, self.OAUTH_REFRESH_TOKEN]
        )

    def is_production(self) -> bool:
        return self.ENVIRONMENT == Environment.PRODUCTION

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )


# Instantiate the settings
settings = Settings()
