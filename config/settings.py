# config/settings.py
"""
⚙️ НАСТРОЙКИ

Все значения читаются из переменных окружения или .env (регистр не важен).
Неправильный тип (например API_PORT=abc) → ошибка сразу при старте.

Без .env приложение поднимается локально: SQLite, память вместо Redis,
бот выключен.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Literal, Optional


class Settings(BaseSettings):
    """Один объект на процесс: from config.settings import config"""

    # ==========================================
    # DATABASE
    # ==========================================
    database_url: str = "sqlite+aiosqlite:///./gas_orders.db"

    # ==========================================
    # REDIS (сессии и черновики корзины)
    # ==========================================
    redis_url: str = ""
    # Пусто = храним в памяти процесса (MemoryStorage)

    # ==========================================
    # API
    # ==========================================
    api_host: str = "0.0.0.0"
    api_port: int = 5000
    cors_origins: List[str] = ["*"]

    # ==========================================
    # AUTH / СЕССИИ
    # ==========================================
    admin_password: str = ""
    session_ttl_seconds: int = 60 * 60 * 24 * 30
    admin_session_ttl_seconds: int = 60 * 60 * 8

    # ==========================================
    # КОДЫ ПОДТВЕРЖДЕНИЯ
    # ==========================================
    verification_code_ttl_minutes: int = 10
    max_login_attempts: int = 5
    login_lock_minutes: int = 15
    verification_send_limit: int = 3
    verification_send_window: int = 600
    # Не больше 3 кодов на один номер за 10 минут

    # ==========================================
    # WHATSAPP / SMS (вебхук автоматизации)
    # ==========================================
    whatsapp_webhook_url: str = ""
    sms_webhook_url: str = ""
    messaging_timeout_seconds: float = 10.0

    # ==========================================
    # СПРАВОЧНИК НАСЕЛЕННЫХ ПУНКТОВ (data.gov.il)
    # ==========================================
    cities_api_url: str = "https://data.gov.il/api/3/action/datastore_search"
    cities_resource_id: str = "5c78e9fa-c2e2-4771-93ff-7f400a12f7ba"
    cities_limit: int = 2000

    # ==========================================
    # TELEGRAM (уведомления оператору)
    # ==========================================
    bot_token: str = ""
    operator_telegram_id: Optional[int] = None

    # ==========================================
    # ЧЕРНОВИКИ КОРЗИНЫ
    # ==========================================
    draft_ttl_seconds: int = 0
    # 0 = черновик живет пока его не удалят

    # ==========================================
    # ENVIRONMENT
    # ==========================================
    environment: Literal["development", "production"] = "development"
    debug: bool = True
    timezone: str = "Asia/Jerusalem"

    # Конфигурация Pydantic
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False
    )

    @property
    def async_database_url(self) -> str:
        """Convert standard PostgreSQL URL to asyncpg format"""
        url = self.database_url
        if url.startswith("postgresql://"):
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        if "sslmode=disable" in url:
            url = url.replace("?sslmode=disable", "")
        return url

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def bot_enabled(self) -> bool:
        """Бот включен только если есть токен и ID оператора"""
        return bool(self.bot_token) and self.operator_telegram_id is not None


config = Settings()
