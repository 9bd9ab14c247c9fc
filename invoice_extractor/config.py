"""
Configuration module for Invoice Extractor.

Handles settings for the remote extraction model, API credentials,
local storage, batch pacing and application-wide settings with validation.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class PacingMode(Enum):
    """How consecutive extraction calls in a batch are spaced out."""
    FIXED = "fixed"                # Fixed pause between files
    TOKEN_BUCKET = "token_bucket"  # Smooth rate limit with a small burst


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    return int(_env_float(name, default))


@dataclass
class GeminiConfig:
    """Configuration for the Gemini multimodal extraction API."""
    base_url: str = field(
        default_factory=lambda: os.getenv(
            "GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"
        )
    )
    model: str = field(default_factory=lambda: os.getenv("GEMINI_MODEL", "gemini-2.5-flash"))
    api_key: str = field(
        default_factory=lambda: os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY", "")
    )
    temperature: float = 0.1  # Low temperature for deterministic extraction
    timeout: int = field(default_factory=lambda: _env_int("GEMINI_TIMEOUT", 120))

    def validate_api_key(self) -> tuple[bool, str]:
        """Validate the Gemini API key is set."""
        if not self.api_key:
            return False, (
                "Gemini API key not set.\n"
                "Set it via environment variable: GEMINI_API_KEY=your_key\n"
                "Or add it to a .env file next to the app."
            )
        if len(self.api_key) < 20:
            return False, "Gemini API key appears to be invalid (too short)"
        return True, "Gemini API key is configured"


@dataclass
class StorageConfig:
    """Configuration for the local per-user invoice store."""
    data_dir: Path = field(
        default_factory=lambda: Path(
            os.getenv("INVOICE_EXTRACTOR_DATA_DIR", str(Path.home() / ".invoice_extractor"))
        ).expanduser()
    )

    def validate_data_dir(self) -> tuple[bool, str]:
        """Check the data directory exists (creating it) and is writable."""
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            return False, f"Cannot create data directory {self.data_dir}: {e}"
        if not os.access(self.data_dir, os.W_OK):
            return False, f"Data directory {self.data_dir} is not writable"
        return True, f"Invoices are stored in {self.data_dir}"


@dataclass
class BatchConfig:
    """Pacing of extraction calls within one upload batch."""
    pacing: PacingMode = field(
        default_factory=lambda: PacingMode(os.getenv("INVOICE_BATCH_PACING", "fixed"))
    )
    delay_seconds: float = field(default_factory=lambda: _env_float("INVOICE_BATCH_DELAY", 1.0))
    rate_per_minute: int = field(default_factory=lambda: _env_int("INVOICE_RATE_PER_MINUTE", 15))
    burst_size: int = 1


@dataclass
class AppConfig:
    """Main application configuration."""
    gemini: GeminiConfig = field(default_factory=GeminiConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    batch: BatchConfig = field(default_factory=BatchConfig)

    # Preview settings
    preview_max_size: int = field(
        default_factory=lambda: _env_int("INVOICE_PREVIEW_MAX_SIZE", 1536)
    )

    # Upload settings
    accepted_extensions: tuple[str, ...] = (
        "pdf", "png", "jpg", "jpeg", "gif", "bmp", "tif", "tiff", "webp",
    )

    # Validation settings
    currency_symbol: str = "$"


def validate_system_requirements() -> dict:
    """
    Validate all system requirements on startup.

    Returns:
        Dictionary with validation results for each requirement.
    """
    config = get_config()
    results = {}

    api_key_valid, api_key_msg = config.gemini.validate_api_key()
    results["gemini"] = {
        "configured": api_key_valid,
        "message": api_key_msg,
        "model": config.gemini.model,
    }

    storage_valid, storage_msg = config.storage.validate_data_dir()
    results["storage"] = {
        "writable": storage_valid,
        "message": storage_msg,
        "path": str(config.storage.data_dir),
    }

    # Check Python dependencies
    try:
        import diskcache
        import openpyxl
        import PIL
        import pyperclip
        import requests
        results["python_deps"] = {
            "installed": True,
            "message": "All Python dependencies installed"
        }
    except ImportError as e:
        results["python_deps"] = {
            "installed": False,
            "message": f"Missing Python dependency: {e.name}"
        }

    return results


# Global configuration instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get or create the global configuration instance."""
    global _config
    if _config is None:
        _config = AppConfig()
    return _config


def update_config(**kwargs) -> AppConfig:
    """Update configuration with new values."""
    config = get_config()
    for key, value in kwargs.items():
        if hasattr(config, key):
            setattr(config, key, value)
    return config


def reset_config() -> None:
    """Drop the global configuration so the next get_config() re-reads the environment."""
    global _config
    _config = None
