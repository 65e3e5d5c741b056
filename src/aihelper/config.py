"""Configuration for aihelper.

Config discovery (first match wins):
  1. ``--config`` flag
  2. ``./aihelper.yaml``
  3. ``~/.config/aihelper/config.yaml``
  4. Built-in defaults

The token may also come from the ``AIHELPER_TOKEN`` environment variable
when the file does not set one.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

import yaml

_logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.openai.com/v1/responses"
DEFAULT_MODEL = "gpt-5.2"
DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful assistant. When page context is provided, "
    "use it to answer accurately and concisely."
)
DEFAULT_TEMPERATURE = 0.2
DEFAULT_MAX_PAGE_CHARS = 12000
DEFAULT_MAX_OUTPUT_TOKENS = 1024

TOKEN_ENV_VAR = "AIHELPER_TOKEN"

_BEARER_RE = re.compile(r"^Bearer\s+", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Config data structures
# ---------------------------------------------------------------------------

@dataclass
class AssistantConfig:
    """Top-level config for aihelper."""

    api_url: str = DEFAULT_API_URL
    token: str = ""
    model: str = DEFAULT_MODEL
    enable_selection_actions: bool = False
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    temperature: float = DEFAULT_TEMPERATURE
    max_page_chars: int = DEFAULT_MAX_PAGE_CHARS
    max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS

    # Transport
    retries: int = 1
    retry_delay: float = 0.35  # seconds, linear: 0.35, 0.70, ...
    timeout: float = 300

    def missing_fields(self) -> list[str]:
        """Return the names of required settings that are empty."""
        missing = []
        if not self.api_url.strip():
            missing.append("api_url")
        if not self.token.strip():
            missing.append("token")
        if not self.model.strip():
            missing.append("model")
        return missing


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def normalize_api_url(value: Any) -> str:
    """Return *value* if it is a valid https URL, else the default URL."""
    raw = str(value or "").strip()
    if not raw:
        return DEFAULT_API_URL
    try:
        parts = urlsplit(raw)
    except ValueError:
        return DEFAULT_API_URL
    if parts.scheme.lower() != "https" or not parts.netloc:
        _logger.warning("Ignoring non-https API URL %r", raw)
        return DEFAULT_API_URL
    return raw


def build_auth_headers(token: Any) -> dict[str, str]:
    """Build the Authorization header for a bearer token.

    A token that already carries the ``Bearer`` scheme is passed through.
    """
    t = str(token or "").strip()
    if not t:
        return {}
    if _BEARER_RE.match(t):
        return {"Authorization": t}
    return {"Authorization": f"Bearer {t}"}


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

_SEARCH_PATHS = [
    Path("./aihelper.yaml"),
    Path.home() / ".config" / "aihelper" / "config.yaml",
]


def _parse_config(raw: dict[str, Any]) -> AssistantConfig:
    defaults = AssistantConfig()
    model = str(raw.get("model") or "").strip() or DEFAULT_MODEL
    system_prompt = raw.get("system_prompt")
    if not isinstance(system_prompt, str):
        system_prompt = defaults.system_prompt
    token = raw.get("token")
    if not isinstance(token, str) or not token.strip():
        token = os.environ.get(TOKEN_ENV_VAR, "")
    return AssistantConfig(
        api_url=normalize_api_url(raw.get("api_url")),
        token=token,
        model=model,
        enable_selection_actions=bool(raw.get("enable_selection_actions", False)),
        system_prompt=system_prompt,
        temperature=float(raw.get("temperature", defaults.temperature)),
        max_page_chars=int(raw.get("max_page_chars", defaults.max_page_chars)),
        max_output_tokens=int(
            raw.get("max_output_tokens", defaults.max_output_tokens),
        ),
        retries=max(0, int(raw.get("retries", defaults.retries))),
        retry_delay=float(raw.get("retry_delay", defaults.retry_delay)),
        timeout=float(raw.get("timeout", defaults.timeout)),
    )


def load_config(path: str | Path | None = None) -> AssistantConfig:
    """Load configuration from YAML.

    Parameters
    ----------
    path:
        Explicit config path.  If *None*, search default locations.

    Returns
    -------
    AssistantConfig
    """
    config_path: Path | None = None

    if path is not None:
        config_path = Path(path)
        if not config_path.exists():
            _logger.warning("Config file not found: %s, using defaults", path)
            return _parse_config({})
    else:
        for candidate in _SEARCH_PATHS:
            if candidate.exists():
                config_path = candidate
                break

    if config_path is None:
        _logger.info("No config file found, using defaults")
        return _parse_config({})

    _logger.info("Loading config from %s", config_path)
    with open(config_path) as f:
        raw = yaml.safe_load(f) or {}

    return _parse_config(raw)
