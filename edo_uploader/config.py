"""
Configuration for the EDO uploader
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    """Application configuration"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="EDO_",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    app_name: str = "EDO Uploader"
    app_version: str = "1.0.0"
    log_level: str = "INFO"

    # Saby endpoints
    base_url: str = "https://online.sbis.ru"
    auth_url: str = "https://online.sbis.ru/auth/service/"
    service_url: str = "https://online.sbis.ru/service/?srv=1"
    session_header: str = "X-SBISSessionID"

    # HTTP
    http_timeout_seconds: float = 30.0
    user_agent: str = "edo-uploader/1.0"

    # Documents
    default_document_type: str = "ДоговорИсх"
    period_note_template: str = "Еженедельный отчет по выручке и наценке ({week} неделя)"
    document_extensions: list[str] = [".doc", ".docx"]
    default_file_name: str = "document.docx"

    # Our organization (CLI fallback when meta does not carry it)
    our_tax_id: Optional[str] = None
    our_registration_code: Optional[str] = None

    # Limits
    max_file_size_mb: int = 20
    batch_concurrency: int = 1


# Configuration singleton
settings = Settings()
