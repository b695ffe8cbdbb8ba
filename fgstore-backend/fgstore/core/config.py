import json
from typing import List, Union
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "FG Store Backend"
    env: str = "dev"
    secret_key: str
    access_token_expire_minutes: int = 60

    # DATABASE
    database_url: str
    db_pool_size: int = Field(default=10, ge=1, le=100)
    db_max_overflow: int = Field(default=20, ge=0, le=200)
    db_pool_timeout_seconds: int = Field(default=30, ge=1, le=300)
    db_pool_recycle_seconds: int = Field(default=1800, ge=30, le=86_400)

    api_timeout_hint_ms: int = Field(default=300000, ge=1000, le=1_800_000)

    # LOGGING
    log_level: str = "INFO"

    # WORKFLOW
    fg_notification_role: str = "FinishedGoodsStoreManager"

    # INVENTORY
    default_location_code: str = "FG-A1"
    fallback_location_codes: List[str] = Field(
        default_factory=lambda: ["FG-A1", "FG-A2", "FG-B1", "FG-B2"]
    )
    expiry_critical_days: int = Field(default=7, ge=0)
    expiry_warning_days: int = Field(default=30, ge=1)
    recent_movements_limit: int = Field(default=10, ge=1, le=100)

    # PRICING
    default_currency: str = "LKR"

    # CORS
    cors_origins: List[str] = Field(default_factory=lambda: ["http://localhost:3000"])
    cors_origin_regex: str | None = None

    @field_validator("cors_origins", "fallback_location_codes", mode="before")
    @classmethod
    def assemble_string_list(cls, v: Union[str, List[str]]) -> List[str]:
        if v is None:
            return []
        if isinstance(v, str):
            if not v.strip():
                return []
            if v.startswith("["):
                parsed = json.loads(v)
                if not isinstance(parsed, list):
                    raise ValueError("List settings given as JSON must be a list")
                return [str(i).strip() for i in parsed if str(i).strip()]
            return [i.strip() for i in v.split(",") if i.strip()]
        if isinstance(v, list):
            return [str(i).strip() for i in v if str(i).strip()]
        raise ValueError(v)

    @field_validator("default_location_code", "default_currency")
    @classmethod
    def normalize_codes(cls, value: str) -> str:
        cleaned = (value or "").strip().upper()
        if not cleaned:
            raise ValueError("Code settings cannot be empty")
        return cleaned

    @model_validator(mode="after")
    def validate_expiry_windows(self) -> "Settings":
        if self.expiry_critical_days >= self.expiry_warning_days:
            raise ValueError("EXPIRY_CRITICAL_DAYS must be lower than EXPIRY_WARNING_DAYS")
        return self

    @model_validator(mode="after")
    def validate_production_safety(self) -> "Settings":
        env_value = self.env.lower().strip()
        if env_value not in {"prod", "production"}:
            return self

        weak_secrets = {
            "",
            "change_me",
            "change_me_please_to_a_long_random_string",
            "dev-secret-key-change-before-prod",
        }
        if self.secret_key.strip() in weak_secrets or len(self.secret_key.strip()) < 32:
            raise ValueError("SECRET_KEY must be a strong random value in production")

        if "*" in self.cors_origins:
            raise ValueError("CORS_ORIGINS cannot contain '*' in production")
        if self.cors_origin_regex:
            raise ValueError("CORS_ORIGIN_REGEX cannot be set in production")

        return self

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        enable_decoding=False,
    )


settings = Settings()
