import os
from pathlib import Path
from typing import List, Optional


def _env_flag(name: str, default: str = "0") -> bool:
    return str(os.getenv(name, default)).lower() in {"1", "true", "yes"}


class Config:
    """Centralized configuration management for the USPTO monitor."""

    # USPTO Configuration
    USPTO_API_KEY: Optional[str] = os.getenv("USPTO_API_KEY")
    TRADEMARK_DOCS_URL: str = os.getenv(
        "TRADEMARK_DOCS_URL", "https://tsdrapi.uspto.gov/ts/cd/casedocs/bundle.xml"
    )
    PATENT_DOCS_URL: str = os.getenv(
        "PATENT_DOCS_URL", "https://api.uspto.gov/api/v1/patent/applications"
    )
    PATENT_DOWNLOAD_PROXY: Optional[str] = os.getenv("PATENT_DOWNLOAD_PROXY")
    REGISTRY_TIMEOUT: float = float(os.getenv("REGISTRY_TIMEOUT", "15"))
    DOWNLOAD_TIMEOUT: float = float(os.getenv("DOWNLOAD_TIMEOUT", "30"))

    # Google Drive Configuration
    GDRIVE_FOLDER_ID: Optional[str] = os.getenv("GDRIVE_FOLDER_ID")
    GDRIVE_ACCESS_TOKEN: Optional[str] = os.getenv("GDRIVE_ACCESS_TOKEN")
    GDRIVE_UPLOAD_URL: str = os.getenv(
        "GDRIVE_UPLOAD_URL",
        "https://www.googleapis.com/upload/drive/v3/files"
        "?uploadType=multipart&fields=id,webViewLink",
    )

    # Email Configuration
    EMAIL_USER: Optional[str] = os.getenv("EMAIL_USER")
    EMAIL_PASS: Optional[str] = os.getenv("EMAIL_PASS")
    EMAIL_TO: List[str] = [
        addr.strip() for addr in os.getenv("EMAIL_TO", "").split(",") if addr.strip()
    ]
    SMTP_HOST: str = os.getenv("SMTP_HOST", "smtp.gmail.com")
    SMTP_PORT: int = int(os.getenv("SMTP_PORT", "465"))

    # Lawmatics Configuration
    LAW_TOKEN: Optional[str] = os.getenv("LAW_TOKEN")
    LAWMATICS_API_URL: str = os.getenv("LAWMATICS_API_URL", "https://api.lawmatics.com/v1")
    LAWMATICS_FORM_URL: Optional[str] = os.getenv("LAWMATICS_FORM_URL")
    CRM_TIMEOUT: float = float(os.getenv("CRM_TIMEOUT", "10"))
    FORM_TIMEOUT: float = float(os.getenv("FORM_TIMEOUT", "60"))

    # Processing Configuration
    SCHEDULE_MINUTES: int = int(os.getenv("SCHEDULE_MINUTES", "360"))
    MATTER_DELAY_SECONDS: float = float(os.getenv("MATTER_DELAY_SECONDS", "2"))
    SUBMISSION_DELAY_SECONDS: float = float(os.getenv("SUBMISSION_DELAY_SECONDS", "5"))
    STATUS_SNAPSHOT_SECONDS: int = int(os.getenv("STATUS_SNAPSHOT_SECONDS", "30"))
    AUTOSTART_SCHEDULER: bool = _env_flag("AUTOSTART_SCHEDULER")

    # API Configuration
    API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
    API_PORT: int = int(os.getenv("PORT", "5000"))
    API_KEY: Optional[str] = os.getenv("API_KEY")
    API_TITLE: str = "USPTO Matter Monitor"
    API_VERSION: str = "1.0.0"

    # File Paths
    STATE_DIR: Path = Path(os.getenv("STATE_DIR", "state"))
    STATE_PATH: Path = Path(
        os.getenv("STATE_PATH", str(STATE_DIR / "lastProcessedState.json"))
    )
    STATUS_PATH: Path = Path(
        os.getenv("STATUS_PATH", str(STATE_DIR / "automation-status.json"))
    )
    MATTERS_PATH: Path = Path(os.getenv("MATTERS_PATH", "map.json"))
    LOG_FILE: str = os.getenv("LOG_FILE", "logs/uspto_monitor.log")

    # Logging Controls
    LOG_PAYLOAD_PREVIEW_MAX: int = int(os.getenv("LOG_PAYLOAD_PREVIEW_MAX", "500"))

    REQUIRED_SETTINGS = ("EMAIL_USER", "EMAIL_PASS", "EMAIL_TO", "GDRIVE_FOLDER_ID")

    @classmethod
    def initialize_directories(cls):
        """Initialize required directories."""
        cls.STATE_DIR.mkdir(parents=True, exist_ok=True)
