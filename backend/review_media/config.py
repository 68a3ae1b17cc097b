"""
Application configuration using Pydantic Settings.
All environment variables are loaded here with sensible defaults.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict


MIB = 1024 * 1024

DEVELOPMENT_ENVIRONMENTS = ("dev", "development", "local")


def is_development_environment(environment: str) -> bool:
    """Whether diagnostic detail may be exposed in this environment."""
    return environment.lower() in DEVELOPMENT_ENVIRONMENTS


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Environment
    environment: str = "production"  # Set to dev/development/local to expose error detail
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite+aiosqlite:///./reviews.db"

    # Media storage
    # Files land in <uploads_root>/<review_media_dir>/ and are served under media_url_prefix
    uploads_root: str = "uploads"
    review_media_dir: str = "review-media"
    media_url_prefix: str = "/uploads/review-media"

    # Ingestion gate limits (multipart structural limits)
    media_field_name: str = "media"
    max_files: int = 10
    max_file_size_bytes: int = 100 * MIB  # Uniform per-part cap regardless of type
    max_parts: int = 100
    max_fields: int = 50
    max_field_key_bytes: int = 100
    max_field_value_bytes: int = 1 * MIB

    # Client-side caps (per media kind)
    max_batch_items: int = 10  # Uploaded files and URL entries counted together
    max_image_bytes: int = 10 * MIB
    max_video_bytes: int = 100 * MIB

    # Base URL used by the client coordinator
    api_base_url: str = "http://localhost:8000"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @property
    def is_development(self) -> bool:
        """Whether diagnostic detail may be exposed in error responses."""
        return is_development_environment(self.environment)


# Global settings instance
settings = Settings()
