from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Server Configuration
    host: str = "0.0.0.0"
    port: int = 8288

    # Output Configuration
    source_image: str = "resources/image.jpg"
    output_dir: str = "outputs"

    # Job Processing Configuration
    processing_min_seconds: float = 10.0
    processing_max_seconds: float = 20.0
    job_poll_interval: float = 1.0

    # Logging Configuration
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def processing_delay_range(self) -> tuple[float, float]:
        """Return (min, max) simulated processing time in seconds."""
        low = min(self.processing_min_seconds, self.processing_max_seconds)
        high = max(self.processing_min_seconds, self.processing_max_seconds)
        return low, high


# Global settings instance
settings = Settings()
