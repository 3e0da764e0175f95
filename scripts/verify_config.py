#!/usr/bin/env python3
"""
Configuration for the MDX verification tool.

Settings come from an optional YAML file validated against CONFIG_SCHEMA
(JSON Schema Draft 7). Keys left out of the file keep their defaults.

Example .verify-mdx.yml:
    schema_version: 1
    extensions: [".mdx"]
    exclude_dirs: ["node_modules", "translations"]
    freshness_max_age_days: 365
"""

import logging
import re
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union

import yaml
from jsonschema import Draft7Validator

from frontmatter_fields import DEFAULT_RELEASE_DATE_PATTERN

logger = logging.getLogger(__name__)


DEFAULT_CONFIG_FILE = ".verify-mdx.yml"

DEFAULT_EXCLUDE_FROM_FRESHNESS_PATHS = (
    "src/content/docs/release-notes/",
    "src/content/whats-new/",
    "src/content/docs/style-guide/",
    "src/content/docs/security/new-relic-security/security-bulletins/",
    "src/i18n/content/",
)

_STRING_LIST = {"type": "array", "items": {"type": "string", "minLength": 1}, "uniqueItems": True}

CONFIG_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "verify-mdx configuration",
    "type": "object",
    "required": ["schema_version"],
    "additionalProperties": False,
    "properties": {
        "schema_version": {"type": "integer", "const": 1},
        "extensions": {
            "type": "array",
            "items": {"type": "string", "pattern": r"^\.[A-Za-z0-9]+$"},
            "minItems": 1,
            "uniqueItems": True,
        },
        "exclude_dirs": _STRING_LIST,
        "exclude_from_freshness_paths": _STRING_LIST,
        "release_date_pattern": {"type": "string", "minLength": 1},
        "freshness_max_age_days": {"type": ["integer", "null"], "minimum": 1},
        "check_images": {"type": "boolean"},
    },
}


class ConfigError(Exception):
    """Raised when a configuration file cannot be read or fails the schema."""
    pass


@dataclass(frozen=True)
class VerifyConfig:
    """
    Effective tool settings.

    Attributes:
        extensions: File suffixes treated as documents
        exclude_dirs: Directory names skipped during discovery
        exclude_from_freshness_paths: Path fragments exempt from the freshness check
        release_date_pattern: Regex selecting pages that need a releaseDate
        freshness_max_age_days: Maximum age of freshnessValidatedDate (None: no limit)
        check_images: Whether to run the image import check
    """
    extensions: Tuple[str, ...] = (".md", ".mdx")
    exclude_dirs: Tuple[str, ...] = ("node_modules", ".git")
    exclude_from_freshness_paths: Tuple[str, ...] = DEFAULT_EXCLUDE_FROM_FRESHNESS_PATHS
    release_date_pattern: str = DEFAULT_RELEASE_DATE_PATTERN
    freshness_max_age_days: Optional[int] = None
    check_images: bool = True


def config_from_dict(data: Dict[str, Any]) -> VerifyConfig:
    """
    Build a VerifyConfig from a parsed configuration mapping.

    Raises:
        ConfigError: If the mapping fails the schema or the release date
            pattern is not a valid regular expression
    """
    validator = Draft7Validator(CONFIG_SCHEMA)
    problems = sorted(validator.iter_errors(data), key=lambda e: [str(p) for p in e.path])
    if problems:
        details = "; ".join(
            f"{'.'.join(str(p) for p in problem.path) or '<root>'}: {problem.message}"
            for problem in problems
        )
        raise ConfigError(f"Invalid configuration: {details}")

    if "release_date_pattern" in data:
        try:
            re.compile(data["release_date_pattern"])
        except re.error as e:
            raise ConfigError(f"Invalid release_date_pattern: {e}")

    values = {}
    for item in fields(VerifyConfig):
        if item.name in data:
            value = data[item.name]
            values[item.name] = tuple(value) if isinstance(value, list) else value

    return VerifyConfig(**values)


def load_config(path: Optional[Union[str, Path]] = None) -> VerifyConfig:
    """
    Load settings from a YAML file.

    Args:
        path: Configuration file; when None, DEFAULT_CONFIG_FILE in the
            working directory is used if it exists

    Returns:
        Effective configuration (defaults when no file is found)

    Raises:
        ConfigError: If the file is missing (explicit path), unreadable,
            not valid YAML, or fails the schema
    """
    if path is None:
        candidate = Path(DEFAULT_CONFIG_FILE)
        if not candidate.is_file():
            return VerifyConfig()
        path = candidate

    config_path = Path(path)
    if not config_path.is_file():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        data = yaml.safe_load(config_path.read_text(encoding='utf-8'))
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML in {config_path}: {e}")

    if not isinstance(data, dict):
        raise ConfigError(f"Configuration in {config_path} must be a mapping")

    logger.debug("Loaded configuration from %s", config_path)
    return config_from_dict(data)
