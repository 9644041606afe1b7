"""Runtime configuration for HN Sentiment.

Settings are read from environment variables, optionally seeded from a .env
file in the project root:

- OPENROUTER_API_KEY: API key for the inference endpoint (required for analysis)
- HN_SENTIMENT_MODEL: Model identifier (default: anthropic/claude-haiku-4.5)
- HN_SENTIMENT_CONCURRENCY: Maximum concurrent root threads (default: 8)
- HN_SENTIMENT_TEMPERATURE: Sampling temperature (default: 0.3)
- HN_API_BASE_URL: Item store base URL
- OPENROUTER_BASE_URL: OpenAI-compatible inference base URL
- HN_SENTIMENT_LOG_DIR: Directory for JSON logs (default: logs)
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

import structlog

logger = structlog.get_logger()

MODELS = [
    'anthropic/claude-haiku-4.5',
    'anthropic/claude-sonnet-4.5',
    'deepseek/deepseek-v3.2',
    'google/gemini-3-flash-preview',
    'openai/gpt-4o-mini',
    'openai/gpt-5-mini',
    'openai/gpt-5.2',
    'x-ai/grok-4.1-fast',
]

DEFAULT_MODEL = 'anthropic/claude-haiku-4.5'
DEFAULT_CONCURRENCY = 8
DEFAULT_TEMPERATURE = 0.3
DEFAULT_HN_BASE_URL = "https://hacker-news.firebaseio.com/v0"
DEFAULT_INFERENCE_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_LOG_DIR = "logs"


@dataclass
class Settings:
    """Resolved runtime settings."""
    api_key: str
    model: str = DEFAULT_MODEL
    concurrency: int = DEFAULT_CONCURRENCY
    temperature: float = DEFAULT_TEMPERATURE
    hn_base_url: str = DEFAULT_HN_BASE_URL
    inference_base_url: str = DEFAULT_INFERENCE_BASE_URL
    log_dir: str = DEFAULT_LOG_DIR


def load_dotenv(env_path: str) -> None:
    """Load a .env file into os.environ if it exists. Existing values win."""
    if not os.path.exists(env_path):
        return
    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith("#") and "=" in line:
                key, _, value = line.partition("=")
                os.environ.setdefault(key.strip(), value.strip().strip('"').strip("'"))


def _read_int(environ: Mapping[str, str], name: str, default: int, minimum: int) -> int:
    raw = environ.get(name, '').strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


def _read_float(environ: Mapping[str, str], name: str, default: float, low: float, high: float) -> float:
    raw = environ.get(name, '').strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")
    if not low <= value <= high:
        raise ValueError(f"{name} must be between {low} and {high}, got {value}")
    return value


def load_settings(
    environ: Optional[Mapping[str, str]] = None,
    require_api_key: bool = True
) -> Settings:
    """Build Settings from environment variables.

    Args:
        environ: Mapping to read from (default: os.environ)
        require_api_key: Raise when OPENROUTER_API_KEY is missing (default: True).
            Discovery-only runs pass False.

    Returns:
        Settings: Validated settings

    Raises:
        ValueError: If a required variable is missing or a value is invalid.
            The message names the offending variable.
    """
    if environ is None:
        environ = os.environ

    api_key = environ.get('OPENROUTER_API_KEY', '').strip()
    if require_api_key and not api_key:
        logger.error("settings_load_failed", missing_vars=['OPENROUTER_API_KEY'])
        raise ValueError("Missing required environment variable(s): OPENROUTER_API_KEY")

    settings = Settings(
        api_key=api_key,
        model=environ.get('HN_SENTIMENT_MODEL', '').strip() or DEFAULT_MODEL,
        concurrency=_read_int(environ, 'HN_SENTIMENT_CONCURRENCY', DEFAULT_CONCURRENCY, 1),
        temperature=_read_float(environ, 'HN_SENTIMENT_TEMPERATURE', DEFAULT_TEMPERATURE, 0.0, 2.0),
        hn_base_url=environ.get('HN_API_BASE_URL', '').strip() or DEFAULT_HN_BASE_URL,
        inference_base_url=environ.get('OPENROUTER_BASE_URL', '').strip() or DEFAULT_INFERENCE_BASE_URL,
        log_dir=environ.get('HN_SENTIMENT_LOG_DIR', '').strip() or DEFAULT_LOG_DIR,
    )

    if settings.model not in MODELS:
        logger.info("custom_model_configured", model=settings.model)

    return settings
