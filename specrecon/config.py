"""specrecon configuration management.

Loads configuration from environment variables with sensible defaults.
Thresholds default to the calibrated values the parsers and matcher were
tuned with; override them only with a reason.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

# Load .env file if present
load_dotenv()


@dataclass
class DBConfig:
    """Database connection configuration."""

    url: str
    pool_size: int = 10
    pool_max_overflow: int = 20
    pool_timeout: int = 30
    echo: bool = False  # SQL logging


@dataclass
class ParsingConfig:
    """Document ingestion limits and heuristics."""

    invoice_header_search_rows: int = 10
    spec_header_search_rows: int = 30
    metadata_search_rows: int = 30
    metadata_text_snippet: int = 3000
    garbage_ratio_threshold: float = 0.3
    max_file_size_mb: int = 50


@dataclass
class MatchingConfig:
    """Matching engine thresholds (confidences are in [0, 1])."""

    min_confidence: float = 0.4
    max_candidates_per_item: int = 3
    rule_similarity_min: float = 0.8
    name_similarity_min: float = 0.6
    full_similarity_min: float = 0.5


@dataclass
class LearningConfig:
    """Rule learner confidences."""

    exact_initial_confidence: float = 0.9
    analog_initial_confidence: float = 0.75
    exact_increment: float = 0.02
    manual_confidence: float = 0.95


@dataclass
class AppConfig:
    """Root application configuration.

    Loads from environment variables with fail-fast on missing required values.
    """

    db: DBConfig
    log_level: str = "INFO"
    log_format: str = "text"  # json or text

    parsing: ParsingConfig = field(default_factory=ParsingConfig)
    matching: MatchingConfig = field(default_factory=MatchingConfig)
    learning: LearningConfig = field(default_factory=LearningConfig)

    @classmethod
    def from_env(cls) -> AppConfig:
        """Load configuration from environment variables.

        Required environment variables:
        - DATABASE_URL: SQLAlchemy async connection string

        Raises:
            KeyError: If required environment variables are missing
        """
        database_url = os.environ.get("DATABASE_URL")
        if not database_url:
            raise KeyError(
                "DATABASE_URL environment variable is required. "
                "Example: sqlite+aiosqlite:///data/specrecon.db"
            )

        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "text"),
            db=DBConfig(
                url=database_url,
                pool_size=int(os.getenv("DB_POOL_SIZE", "10")),
                pool_max_overflow=int(os.getenv("DB_POOL_MAX_OVERFLOW", "20")),
                pool_timeout=int(os.getenv("DB_POOL_TIMEOUT", "30")),
                echo=os.getenv("DB_ECHO", "false").lower() == "true",
            ),
            parsing=ParsingConfig(
                invoice_header_search_rows=int(os.getenv("INVOICE_HEADER_SEARCH_ROWS", "10")),
                spec_header_search_rows=int(os.getenv("SPEC_HEADER_SEARCH_ROWS", "30")),
                metadata_search_rows=int(os.getenv("METADATA_SEARCH_ROWS", "30")),
                metadata_text_snippet=int(os.getenv("METADATA_TEXT_SNIPPET", "3000")),
                garbage_ratio_threshold=float(
                    os.getenv("GARBAGE_RATIO_THRESHOLD", "0.3")
                ),
                max_file_size_mb=int(os.getenv("MAX_FILE_SIZE_MB", "50")),
            ),
            matching=MatchingConfig(
                min_confidence=float(os.getenv("MATCH_MIN_CONFIDENCE", "0.4")),
                max_candidates_per_item=int(os.getenv("MATCH_MAX_CANDIDATES", "3")),
            ),
        )


# Singleton instance (lazy-loaded)
_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Get or create singleton AppConfig instance from environment.

    Raises:
        KeyError: If required environment variables are missing
    """
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def reset_config() -> None:
    """Drop the cached configuration (tests change the environment)."""
    global _config
    _config = None
