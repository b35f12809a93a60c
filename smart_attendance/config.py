from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="SMART_ATTENDANCE_",
        extra="ignore",
    )

    # API
    PROJECT_NAME: str = "Smart Attendance"
    LOGS_LIMIT: int = 500

    # Database
    DATABASE_URL: str = "sqlite:///./data/attendance.db"

    # Vision model (Ollama)
    OLLAMA_URL: str = "http://localhost:11434/api/generate"
    VISION_MODEL: str = "llama3.2-vision:latest"
    ORACLE_TIMEOUT_SECONDS: float = 60.0

    # Camera
    CAMERA_SOURCE: str = "0"
    CAMERA_WIDTH: int = 1280
    CAMERA_HEIGHT: int = 720
    CAPTURE_FRAME_COUNT: int = 5
    CAPTURE_INTERVAL_MS: int = 400
    JPEG_QUALITY: int = 90

    # Local time for check-in messages
    TIMEZONE: str = "UTC"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"


settings = Settings()
