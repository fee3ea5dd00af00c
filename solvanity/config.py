"""
Rarity pattern configuration.

The config file is JSON:

    {"patterns": [{"pattern": "1", "minLength": 6},
                  {"pattern": "ab", "minLength": 3}]}
"""

import json
import logging
import os
from typing import Optional

from solvanity.matcher import PatternConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATHS = (
    "config.json",
    os.path.join("solvanity", "config.json"),
)


def parse_config(data) -> list[PatternConfig]:
    """Build PatternConfig entries from decoded JSON.

    Raises ValueError if the structure is not as documented.
    """
    if not isinstance(data, dict) or not isinstance(data.get("patterns"), list):
        raise ValueError("Config must be an object with a 'patterns' list")

    patterns = []
    for entry in data["patterns"]:
        if not isinstance(entry, dict):
            raise ValueError(f"Invalid pattern entry: {entry!r}")
        pattern = entry.get("pattern")
        min_length = entry.get("minLength")
        if not isinstance(pattern, str):
            raise ValueError(f"Pattern entry has no string 'pattern': {entry!r}")
        if isinstance(min_length, bool) or not isinstance(min_length, int) or min_length < 0:
            raise ValueError(f"Pattern entry has no valid 'minLength': {entry!r}")
        patterns.append(PatternConfig(pattern=pattern, min_length=min_length))
    return patterns


def load_config(path: Optional[str] = None) -> Optional[list[PatternConfig]]:
    """Load rarity patterns from the first usable config file.

    Args:
        path: Explicit config file. When omitted, DEFAULT_CONFIG_PATHS are
            tried in order.

    Returns:
        List of PatternConfig, or None if no valid config was found (rarity
        checking is then disabled).
    """
    candidates = [path] if path else list(DEFAULT_CONFIG_PATHS)

    for candidate in candidates:
        if not os.path.exists(candidate):
            if path:
                logger.warning(f"Config file not found: {candidate}")
            continue
        try:
            with open(candidate, "r") as f:
                patterns = parse_config(json.load(f))
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring config {candidate}: {e}")
            continue
        logger.info(f"Loaded {len(patterns)} rarity patterns from {candidate}")
        return patterns

    logger.info("No rarity config found, rare address checking disabled")
    return None
