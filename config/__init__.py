"""
Configuration settings for Questex.

This module provides the Config class with all settings.
When installed as a package, paths are relative to the package location
or can be overridden via environment variables.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Try multiple locations for .env
for env_path in [
    Path.cwd() / ".env",  # Current working directory
    Path(__file__).parent.parent / ".env",  # Package root (when running from source)
    Path.home() / ".questex" / ".env",  # User config directory
]:
    if env_path.exists():
        load_dotenv(env_path, override=True)
        break


def _get_base_dir():
    """Get base directory, preferring environment variable or user config."""
    if os.getenv("QUESTEX_BASE_DIR"):
        return Path(os.getenv("QUESTEX_BASE_DIR"))
    # Default: ~/.questex for installed package, or package parent for dev
    user_dir = Path.home() / ".questex"
    if user_dir.exists():
        return user_dir
    # Fallback to package parent (for running from source)
    return Path(__file__).parent.parent


class Config:
    """Main configuration class for Questex."""

    # Paths - can be overridden via QUESTEX_BASE_DIR env var
    BASE_DIR = _get_base_dir()
    DATA_DIR = BASE_DIR / "data"
    DB_PATH = DATA_DIR / "questex.db"
    CACHE_PATH = DATA_DIR / "cache"

    # LLM Settings
    LLM_PROVIDER = os.getenv("QUESTEX_LLM_PROVIDER", "gemini")  # Options: gemini, deepseek, ollama
    SUPPORTED_PROVIDERS = ["gemini", "deepseek", "ollama"]

    # API Keys
    GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
    DEEPSEEK_API_KEY = os.getenv("DEEPSEEK_API_KEY")

    # Provider models
    GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-1.5-flash-latest")
    DEEPSEEK_MODEL = os.getenv("DEEPSEEK_MODEL", "deepseek-chat")
    OLLAMA_MODEL = os.getenv("QUESTEX_OLLAMA_MODEL", "qwen2.5:14b")
    OLLAMA_BASE_URL = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")

    # Request Settings
    LLM_MAX_OUTPUT_TOKENS = int(os.getenv("QUESTEX_MAX_OUTPUT_TOKENS", "8192"))
    LLM_TIMEOUT = int(os.getenv("QUESTEX_LLM_TIMEOUT", "120"))  # seconds

    # Cache Settings
    CACHE_ENABLED = os.getenv("QUESTEX_CACHE_ENABLED", "true").lower() == "true"
    CACHE_TTL = int(os.getenv("QUESTEX_CACHE_TTL", "3600"))  # seconds

    # Question Settings
    MIN_STATEMENT_LENGTH = 10  # Shorter statements are treated as truncated

    # Logging
    LOG_LEVEL = os.getenv("QUESTEX_LOG_LEVEL", "WARNING").upper()

    @classmethod
    def ensure_dirs(cls):
        """Create all necessary directories."""
        cls.DATA_DIR.mkdir(exist_ok=True, parents=True)
        cls.CACHE_PATH.mkdir(exist_ok=True, parents=True)
