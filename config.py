"""
Central configuration for the PO ingestion service.

Paths, upload limits and HTTP client settings are defined here.
Override via environment variables or by passing a Config instance directly.

Settings priority (highest wins):
  1. config/po_settings.json  (admin-editable, persisted)
  2. Environment variables
  3. Hardcoded defaults in this file
"""
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

# Project root (directory containing this file)
PROJECT_ROOT = Path(__file__).parent

DEFAULT_OUTPUT_DIR = PROJECT_ROOT / "output"
DEFAULT_DB_PATH    = DEFAULT_OUTPUT_DIR / "po.db"
DEFAULT_MAX_UPLOAD = 5 * 1024 * 1024        # 5 MiB


@dataclass
class Config:
    # --- Storage ---
    output_dir: Path = field(
        default_factory=lambda: Path(os.getenv("OUTPUT_DIR", str(DEFAULT_OUTPUT_DIR)))
    )
    db_path: Path = field(
        default_factory=lambda: Path(os.getenv("DB_PATH", str(DEFAULT_DB_PATH)))
    )

    # --- Uploads ---
    max_upload_bytes: int = field(
        default_factory=lambda: int(os.getenv("MAX_UPLOAD_BYTES", str(DEFAULT_MAX_UPLOAD)))
    )
    # Recorded as uploaded_by / created_by when the caller does not say who
    default_uploaded_by: str = field(
        default_factory=lambda: os.getenv("DEFAULT_UPLOADED_BY", "system")
    )

    # --- HTTP client (dashboard/client.py, `main.py upload`) ---
    api_base_url: str = field(
        default_factory=lambda: os.getenv("PO_API_URL", "http://localhost:8000")
    )
    client_timeout_seconds: float = 30.0
    client_max_retries: int = field(
        default_factory=lambda: int(os.getenv("PO_CLIENT_MAX_RETRIES", "2"))
    )
    client_backoff_seconds: float = 0.5     # first retry wait; doubles each attempt

    def __post_init__(self) -> None:
        """Overlay runtime-tunable settings from po_settings.json if present."""
        config_dir = Path(os.getenv("CONFIG_DIR", str(PROJECT_ROOT / "config")))
        settings_file = config_dir / "po_settings.json"
        if not settings_file.exists():
            return
        _type_map: dict[str, type] = {
            "max_upload_bytes":        int,
            "default_uploaded_by":     str,
            "api_base_url":            str,
            "client_timeout_seconds":  float,
            "client_max_retries":      int,
            "client_backoff_seconds":  float,
        }
        try:
            with open(settings_file, encoding="utf-8") as f:
                overrides = {k: v for k, v in json.load(f).items() if not k.startswith("_")}
            for key, val in overrides.items():
                if key in _type_map and hasattr(self, key):
                    setattr(self, key, _type_map[key](val))
        except Exception as exc:
            logger.warning("Failed to load po_settings.json: %s", exc)

    def ensure_output_dir(self) -> None:
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
