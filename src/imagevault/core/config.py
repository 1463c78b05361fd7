"""Configuration management for ImageVault."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )

    ENV: str = "local"
    SERVICE_NAME: str = "imagevault"
    SERVICE_VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"

    # Storage Configuration
    STORAGE_BACKEND: str = "local"  # "gcs" or "local"
    GCP_PROJECT_ID: str = ""
    GCS_BUCKET_NAME: str = ""
    GCS_SIGNING_KEY_FILE: str = ""  # Service account JSON; empty = IAM signBlob
    LOCAL_STORAGE_PATH: str = "data/uploads"
    LOCAL_SIGNING_KEY: str = ""  # Required by the local backend
    PUBLIC_BASE_URL: str = "http://localhost:8080"

    # Upload Constraints
    MAX_UPLOAD_MB: int = 5
    ALLOWED_UPLOAD_MIME_TYPES: str = "image/jpeg,image/png,image/webp"
    ALLOWED_UPLOAD_EXTENSIONS: str = "jpg,jpeg,png,webp"
    MAX_FILES_PER_BATCH: int = 10

    # Retry and cleanup for transient storage failures
    UPLOAD_MAX_RETRIES: int = 3
    UPLOAD_RETRY_DELAYS_MS: str = "0,100,200,400"
    UPLOAD_ENABLE_AUTO_CLEANUP: bool = True

    # Signed URL expiry presets
    SIGNED_URL_DEFAULT_EXPIRY_MINUTES: int = 60  # Standard API responses
    SIGNED_URL_SHORT_EXPIRY_MINUTES: int = 15  # Sensitive content
    SIGNED_URL_LONG_EXPIRY_MINUTES: int = 1440  # Special cases

    @property
    def allowed_mime_types(self) -> list[str]:
        """Parse ALLOWED_UPLOAD_MIME_TYPES into a list."""
        return [mt.strip() for mt in self.ALLOWED_UPLOAD_MIME_TYPES.split(",") if mt.strip()]

    @property
    def allowed_extensions(self) -> list[str]:
        """Parse ALLOWED_UPLOAD_EXTENSIONS into a list of bare, lower-case extensions."""
        return [
            ext.strip().lower().lstrip(".")
            for ext in self.ALLOWED_UPLOAD_EXTENSIONS.split(",")
            if ext.strip()
        ]

    @property
    def retry_delays_ms(self) -> list[int]:
        """Parse UPLOAD_RETRY_DELAYS_MS into a list of integers."""
        return [int(d.strip()) for d in self.UPLOAD_RETRY_DELAYS_MS.split(",") if d.strip()]

    @property
    def max_upload_bytes(self) -> int:
        """Convert MAX_UPLOAD_MB to bytes."""
        return self.MAX_UPLOAD_MB * 1024 * 1024


# Singleton settings instance
settings = Settings()
