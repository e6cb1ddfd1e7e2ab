from pydantic_settings import BaseSettings


class TranscriberSettings(BaseSettings):
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "info"

    # Remote speech-to-text / chat service
    openai_api_key: str = ""
    api_base_url: str = "https://api.openai.com/v1"
    request_timeout_s: float = 120.0
    transcription_model: str = "whisper-1"
    transformation_model: str = "gpt-4o-mini"
    language: str = "pt"
    credential_prefix: str = "sk-"
    max_upload_mb: int = 100

    # Chunking and time compression
    chunk_duration_s: float = 25.0
    target_sample_rate: int = 32000
    speedup: float = 2.0
    min_unit_duration_s: float = 0.1
    max_concurrent_units: int = 1
    ffmpeg_fallback_sample_rate: int = 16000

    # Transformation call
    temperature: float = 0.7
    max_tokens: int = 4000

    model_config = {"env_prefix": "TRANSCRIBER_"}
