"""Centralized configuration via pydantic-settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Service
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    # ElevenLabs API
    elevenlabs_base_url: str = "https://api.elevenlabs.io"
    request_timeout: float | None = 120.0

    # Batch processing
    inter_request_delay: float = 0.5
    snippet_length: int = 60
    max_batches: int = 20

    # Archive
    archive_name: str = "eleven_gen_voices.zip"

    # Default synthesis parameters
    default_model_id: str = "eleven_multilingual_v2"
    default_output_format: str = "mp3_44100_128"
