from pydantic_settings import BaseSettings
from typing import ClassVar, Optional


class Settings(BaseSettings):
    # Server Configuration
    HOST: str = "0.0.0.0"
    PORT: int = 3000

    # Working Area
    WORK_ROOT: Optional[str] = None  # None -> system temp dir

    # Container Layout
    ATTACHMENTS_DIR_NAME: str = "attachments"

    # Output Archive
    OUTPUT_ARCHIVE_NAME: str = "processed_files.zip"
    COMPRESSION_LEVEL: int = 9

    # Limits
    MAX_UPLOAD_SIZE: int = 200 * 1024 * 1024
    MAX_ARCHIVE_ENTRIES: int = 10000
    PROCESSING_TIMEOUT: Optional[float] = None

    LOG_LEVEL: str = "INFO"

    model_config: ClassVar = {
        "env_file": ".env",
        "case_sensitive": True,
        "extra": "ignore"
    }


settings = Settings()
