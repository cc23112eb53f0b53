from pathlib import Path
from typing import List, Literal

from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_PROJECT_ROOT = Path(__file__).resolve().parents[3]
_ENV_PATH = _PROJECT_ROOT / '.env'
_ENV_FILE = _ENV_PATH if _ENV_PATH.exists() else (_PROJECT_ROOT / '.env.example')


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_ignore_empty=True,
        extra='ignore',
    )

    PROJECT_NAME: str = 'Expo Booking Service'
    VERSION: str = '0.1.0'
    DEBUG: bool = True  # Set to False in production

    # Security (bearer tokens are issued elsewhere, we only verify them)
    SECRET_KEY: SecretStr = SecretStr('test_secret_key_change_in_production')
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    ALGORITHM: str = 'HS256'

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = []  # add your frontend URL here

    @field_validator('BACKEND_CORS_ORIGINS', mode='before')
    @classmethod
    def assemble_cors_origins(cls, v: str | List[str]) -> List[str]:
        if isinstance(v, str) and not v.startswith('['):
            return [i.strip() for i in v.split(',') if i.strip()]
        elif isinstance(v, list):
            return v
        return []

    # Document store ('kvrocks' in deployments, 'memory' for tests and local demos)
    DOCUMENT_STORE_BACKEND: Literal['kvrocks', 'memory'] = 'kvrocks'
    DOCUMENT_STORE_KEY_PREFIX: str = 'expo'

    # Kvrocks (Redis protocol)
    KVROCKS_HOST: str = 'localhost'
    KVROCKS_PORT: int = 6666
    KVROCKS_DB: int = 0
    KVROCKS_PASSWORD: str = ''
    KVROCKS_POOL_MAX_CONNECTIONS: int = 50
    KVROCKS_POOL_SOCKET_TIMEOUT: int = 10  # seconds
    KVROCKS_POOL_SOCKET_CONNECT_TIMEOUT: int = 10  # seconds
    KVROCKS_POOL_HEALTH_CHECK_INTERVAL: int = 30  # seconds

    # Capacity ledger critical section
    LEDGER_LOCK_TIMEOUT_SECONDS: float = 2.0
    LEDGER_BUSY_RETRY_ATTEMPTS: int = 3
    LEDGER_BUSY_RETRY_BASE_DELAY_SECONDS: float = 0.05
    LEDGER_BUSY_RETRY_AFTER_SECONDS: int = 1  # Retry-After sent with a 503

    # Push channel (client side)
    CHANNEL_URL: str = 'ws://localhost:8000/ws'
    CHANNEL_HEARTBEAT_INTERVAL_SECONDS: float = 30.0
    CHANNEL_RECONNECT_BASE_DELAY_SECONDS: float = 1.0
    CHANNEL_MAX_RECONNECT_ATTEMPTS: int = 5

    # Push channel (server side)
    DISPATCHER_SUBSCRIBER_BUFFER_SIZE: int = 100


settings = Settings()  # type: ignore
