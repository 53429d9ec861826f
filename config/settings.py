#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Settings - Centralized configuration management
"""

from pathlib import Path
from pydantic_settings import BaseSettings


# Base directory
BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Application settings"""

    # ========== Logging ==========
    log_level: str = "INFO"

    # ========== Database ==========
    tm_db_path: Path = BASE_DIR / "data" / "tm.db"
    tm_db_timeout: float = 30.0  # seconds SQLite waits on a locked database

    # ========== Languages ==========
    # Default pair for this deployment
    tm_source_language: str = "ko"
    tm_target_language: str = "en"

    # ========== Matching ==========
    tm_similarity_threshold: int = 70  # 0-100, inclusive
    tm_event_boost: int = 10
    tm_topic_boost: int = 10
    tm_translator_boost: int = 5
    tm_search_limit: int = 10

    # Edit distance is O(n*m): bound the work per search
    tm_max_candidates: int = 5000
    tm_max_text_length: int = 1000

    # ========== Feedback ==========
    # 0 = lifetime mean of all ratings, N > 0 = mean of the N most recent
    tm_rating_window: int = 0

    # ========== Version ledger ==========
    tm_version_retry_attempts: int = 3

    class Config:
        env_file = str(BASE_DIR / ".env")
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"  # Allow extra fields from .env that aren't defined in model

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self._validate_matching_settings()

    def _validate_matching_settings(self):
        """Reject matching defaults that the ranker could never honor."""
        errors = []

        if not 0 <= self.tm_similarity_threshold <= 100:
            errors.append("TM_SIMILARITY_THRESHOLD must be between 0 and 100")
        for name in ("tm_event_boost", "tm_topic_boost", "tm_translator_boost"):
            if getattr(self, name) < 0:
                errors.append(f"{name.upper()} must not be negative")
        if self.tm_search_limit < 1:
            errors.append("TM_SEARCH_LIMIT must be at least 1")
        if self.tm_rating_window < 0:
            errors.append("TM_RATING_WINDOW must be 0 (lifetime) or a positive window size")
        if self.tm_version_retry_attempts < 1:
            errors.append("TM_VERSION_RETRY_ATTEMPTS must be at least 1")

        if errors:
            raise ValueError(
                "Invalid Translation Memory configuration:\n"
                + "\n".join(f"  - {e}" for e in errors)
            )

    def get_default_language_pair(self) -> tuple:
        """Get the (source, target) language pair used when callers omit one."""
        return self.tm_source_language, self.tm_target_language

    def print_config(self):
        """Print configuration summary"""
        print("\n" + "=" * 70)
        print("TRANSLATION MEMORY CONFIGURATION")
        print("=" * 70)
        print(f"Database:        {self.tm_db_path}")
        print(f"Language Pair:   {self.tm_source_language} -> {self.tm_target_language}")
        print(f"Threshold:       {self.tm_similarity_threshold}")
        print(f"Boosts:          event +{self.tm_event_boost}, topic +{self.tm_topic_boost}, "
              f"translator +{self.tm_translator_boost}")
        print(f"Rating Window:   {self.tm_rating_window or 'lifetime'}")
        print("=" * 70 + "\n")


# Global settings instance
settings = Settings()
