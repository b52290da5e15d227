from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env")

    APP_NAME: str = "GYMDESK"
    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    AUTH_TOKEN_URL: str = "/auth/v1/token"
    DATABASE_URL: str = "sqlite+pysqlite:///./gymdesk.db"
    DEFAULT_TENANT_NAME: str = "Default Gym"
    DEFAULT_ADMIN_USERNAME: str = "owner"
    DEFAULT_ADMIN_EMAIL: str = "owner@example.com"
    METRICS_ENABLED: bool = True
    EXPENSE_DESCRIPTION_MIN_LENGTH: int = 5
    RECEIPT_FOLIO_PREFIX: str = "V"
    RECEIPT_FOLIO_PAD: int = 6
    SHIFT_LIST_DEFAULT_PAGE_SIZE: int = 20
    SHIFT_LIST_MAX_PAGE_SIZE: int = 100
    SALES_LIST_DEFAULT_PAGE_SIZE: int = 50
    SALES_LIST_MAX_PAGE_SIZE: int = 200
    BLIND_CLOSE_ROLES: list[str] = ["RECEPTIONIST"]
    NOTIFICATIONS_ENABLED: bool = False
    NOTIFICATIONS_WEBHOOK_BASE_URL: str = ""
    NOTIFICATIONS_TIMEOUT_SEC: float = 30.0

settings = Settings()
