from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(case_sensitive=True)

    ENVIRONMENT: str = "development"

    # Server settings
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Signaling websocket settings
    WS_PATH: str = "/ws"
    WS_MAX_MESSAGE_BYTES: int = 64 * 1024

    # Browser origins allowed to call the HTTP endpoints
    CORS_ALLOWED_ORIGINS: list[str] = ["http://localhost:5173"]

    # Logging settings
    LOG_LEVEL: str = "INFO"
    LOG_FILE_PATH: str = "logs/logging_errors.log"
    LOG_JSON: bool = False
    # Paths to exclude from access logs (e.g., /metrics, /health)
    LOG_EXCLUDED_PATHS: list[str] = ["/metrics", "/health"]


app_settings = Settings()
