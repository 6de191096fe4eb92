"""Configuration management for the document ingestion pipeline.

Loads and validates YAML configuration with sensible defaults
for loading, OCR, inference, extraction, and pipeline settings.
"""

import logging
import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class LoaderConfig(BaseModel):
    """Configuration for format-specific text extraction."""

    csv_separator: str = " | "
    soffice_cmd: str | None = None


class OCRConfig(BaseModel):
    """Configuration for the OCR fallback backend."""

    provider: Literal["mistral", "tesseract", "none"] = "mistral"
    api_key: str | None = None
    api_key_env: str = "MISTRAL_API_KEY"
    base_url: str = "https://api.mistral.ai/v1"
    model: str = "mistral-ocr-latest"
    timeout_s: float = 120.0
    max_attempts: int = 2
    tesseract_cmd: str | None = None
    default_lang: str = "eng"
    psm: int = 3
    pdf_dpi: int = 300

    def resolve_api_key(self) -> str | None:
        """Return the configured API key, falling back to the environment."""
        return self.api_key or os.environ.get(self.api_key_env)


class InferenceConfig(BaseModel):
    """Configuration for the schema-constrained inference backend."""

    api_key: str | None = None
    api_key_env: str = "OPENAI_API_KEY"
    base_url: str | None = None
    model: str = "gpt-4o-mini"
    timeout_s: float = 60.0
    classification_temperature: float = 0.1
    extraction_temperature: float = 0.1

    def resolve_api_key(self) -> str | None:
        """Return the configured API key, falling back to the environment."""
        return self.api_key or os.environ.get(self.api_key_env)


class ExtractionConfig(BaseModel):
    """Configuration for invoice and receipt field extraction."""

    max_attempts: int = 3
    base_delay_s: float = 1.0
    sample_max_tokens: int = 1200
    min_text_length: int = 50
    max_words: int = 10000


class PipelineConfig(BaseModel):
    """Configuration for end-to-end document processing."""

    stage_timeout_s: float | None = None


class AppConfig(BaseModel):
    """Top-level application configuration."""

    loader: LoaderConfig = Field(default_factory=LoaderConfig)
    ocr: OCRConfig = Field(default_factory=OCRConfig)
    inference: InferenceConfig = Field(default_factory=InferenceConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    log_level: str = "INFO"


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = Path("configs/config.yaml")

    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        return AppConfig(**raw)

    logger.info("No config file found at %s, using defaults", path)
    return AppConfig()
