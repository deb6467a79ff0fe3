from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "School Ledger API"
    app_version: str = "0.1.0"
    frontend_url: str = "http://localhost:3000"
    database_url: str = "sqlite:///./local.db"
    redis_url: str = "redis://localhost:6379/0"
    redis_socket_timeout_seconds: float = 1.0

    log_level: str = "INFO"
    log_json: bool = False

    jwt_secret_key: str = "change-me"
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 60

    billing_period_lock_ttl_seconds: int = 60
    fee_payment_lock_ttl_seconds: int = 10
    period_summary_cache_ttl_seconds: int = 300
    notification_channel: str = "school_ledger:events"
    advance_drops_carry_forward: bool = True

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


settings = Settings()
