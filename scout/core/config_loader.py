"""Loader for config/defaults.yaml.

The file has four top-level sections, each read by the matching pydantic
config model's from_defaults():

- scoring: feature weights, blend ratio, keyword saturation, star cap
- relevance: default thresholds and global switches
- discovery: built-in fallback pattern, seed patterns, webhook event types
- enrichment: queue promotion interval, insight cap, retry bound, progress steps
"""

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

from scout.core.exceptions import ConfigError
from scout.core.logging import get_logger

logger = get_logger(__name__)

# <repo root>/config
_CONFIG_BASE_DIR = Path(__file__).parent.parent.parent / "config"

DEFAULTS_FILE = "defaults.yaml"


@lru_cache(maxsize=1)
def load_defaults() -> dict[str, Any]:
    """Read and cache defaults.yaml.

    Returns:
        Parsed file content

    Raises:
        ConfigError: If the file is missing, malformed, or not a mapping
    """
    return _read_mapping(_CONFIG_BASE_DIR / DEFAULTS_FILE)


def load_section(name: str) -> dict[str, Any]:
    """Return one top-level section of defaults.yaml ({} if absent)."""
    section = load_defaults().get(name)
    return section if isinstance(section, dict) else {}


def load_seed_patterns() -> list[dict[str, Any]]:
    """Return the raw seed pattern entries; entries that are not mappings are dropped."""
    entries = load_section("discovery").get("seed_patterns")
    if not isinstance(entries, list):
        return []
    return [entry for entry in entries if isinstance(entry, dict)]


def clear_global_config_cache() -> None:
    """Forget the cached file so the next load re-reads it."""
    load_defaults.cache_clear()
    logger.debug("Defaults cache cleared")


def _read_mapping(path: Path) -> dict[str, Any]:
    if not path.is_file():
        logger.error("Defaults file not found", path=str(path))
        raise ConfigError(f"Config file not found: {path}", config_path=str(path))

    try:
        content = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        logger.error("Defaults file is not valid YAML", path=str(path), error=str(e))
        raise ConfigError(f"Invalid YAML in {path}: {e}", config_path=str(path)) from e

    if not isinstance(content, dict):
        raise ConfigError(f"Config file must contain a YAML object: {path}", config_path=str(path))

    logger.debug("Defaults loaded", path=str(path), sections=sorted(content))
    return content


__all__ = [
    "clear_global_config_cache",
    "load_defaults",
    "load_section",
    "load_seed_patterns",
]
