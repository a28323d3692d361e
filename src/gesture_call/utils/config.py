"""
Configuration loading.
Loads the YAML config file and validates critical fields against a schema.
"""

import logging
from pathlib import Path
from typing import Optional, Union

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[3] / "config" / "config.yaml"

# Schema: known sections and their expected types
_CONFIG_SCHEMA = {
    "camera": {
        "device_id": int,
        "width": int,
        "height": int,
        "fps": int,
    },
    "recognizer": {
        "model_path": str,
        "num_hands": int,
        "min_detection_confidence": float,
        "min_tracking_confidence": float,
    },
    "call": {
        "accept_gesture": str,
        "decline_gesture": str,
        "min_score": float,
    },
    "logging": {
        "level": str,
    },
}


def load_config(config_path: Optional[Union[str, Path]] = None) -> dict:
    """Load configuration from a YAML file.

    A missing file is not fatal: the caller gets an empty dict and every
    component falls back to its defaults.
    """
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning("Config file not found: %s, using defaults", path)
        return {}

    if not isinstance(data, dict):
        logger.warning("Config file %s does not contain a mapping, using defaults", path)
        return {}

    logger.info("Loaded config from %s", path)
    for warning in validate_config(data):
        logger.warning("Config validation: %s", warning)
    return data


def validate_config(data: dict) -> list:
    """Check known fields against the schema and return a list of warnings."""
    warnings = []
    for section_name, fields in _CONFIG_SCHEMA.items():
        section = data.get(section_name)
        if section is None:
            continue
        if not isinstance(section, dict):
            warnings.append(f"Section '{section_name}' should be a dict, got {type(section).__name__}")
            continue
        for field_name, expected_type in fields.items():
            if field_name not in section:
                continue
            value = section[field_name]
            # Allow int where float is expected
            if expected_type is float and isinstance(value, (int, float)):
                continue
            if not isinstance(value, expected_type):
                warnings.append(
                    f"{section_name}.{field_name}: expected {expected_type.__name__}, "
                    f"got {type(value).__name__} ({value!r})"
                )
    return warnings

