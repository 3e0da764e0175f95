#!/usr/bin/env python3
"""
Frontmatter extraction and field-level checks for documentation pages.

Checks:
- Frontmatter YAML must parse
- freshnessValidatedDate: required, `never` or a YYYY-MM-DD date, not in the future
  and optionally no older than a configured number of days
- releaseDate: required on release notes, what's new posts and security
  bulletins, must be a YYYY-MM-DD date
"""

import datetime
import re
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple, Union

import yaml


FRONTMATTER_PATTERN = re.compile(r'^---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|$)', re.DOTALL)
DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')
DATETIME_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}(:\d{2})?')

FRESHNESS_FIELD = "freshnessValidatedDate"
RELEASE_DATE_FIELD = "releaseDate"

DEFAULT_RELEASE_DATE_PATTERN = (
    r"src/(?!i18n).*(/security-bulletins/|/release-notes/|/whats-new/).*(?<!index)(\.mdx|\.md)$"
)


class FrontmatterError(Exception):
    """
    Raised when the frontmatter block is not valid YAML.

    Attributes:
        reason: Parser message
        snippet: Source excerpt pointing at the problem, if available
    """

    def __init__(self, reason: str, snippet: Optional[str] = None):
        super().__init__(reason)
        self.reason = reason
        self.snippet = snippet


def extract_frontmatter(text: str) -> Dict[str, Any]:
    """
    Parse the leading frontmatter block of a document.

    Args:
        text: Document source

    Returns:
        Dictionary of frontmatter fields ({} when the document has none)

    Raises:
        FrontmatterError: If the block is not valid YAML or not a mapping

    Example:
        >>> extract_frontmatter("---\\ntitle: Hello\\n---\\nBody")
        {'title': 'Hello'}
    """
    match = FRONTMATTER_PATTERN.match(text)
    if not match:
        return {}

    try:
        data = yaml.safe_load(match.group(1))
    except yaml.MarkedYAMLError as e:
        snippet = e.problem_mark.get_snippet() if e.problem_mark is not None else None
        raise FrontmatterError(str(e.problem or e), snippet)
    except yaml.YAMLError as e:
        raise FrontmatterError(str(e))
    except ValueError as e:
        # Out-of-range timestamps such as 2024-13-45
        raise FrontmatterError(f"Invalid value in frontmatter: {e}")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise FrontmatterError(f"Frontmatter must be a mapping of fields, found {type(data).__name__}")

    return data


def frontmatter(text: str) -> Tuple[Dict[str, Any], Optional[FrontmatterError]]:
    """Return (fields, error) instead of raising, so callers can keep checking."""
    try:
        return extract_frontmatter(text), None
    except FrontmatterError as e:
        return {}, e


def _as_date(value: Any) -> Optional[datetime.date]:
    """Coerce a YAML scalar (already a date, or a string) to a date."""
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if isinstance(value, str):
        candidate = value.strip()
        if DATE_PATTERN.match(candidate) or DATETIME_PATTERN.match(candidate):
            try:
                return datetime.date.fromisoformat(candidate[:10])
            except ValueError:
                return None
    return None


def validate_freshness_date(
    text: str,
    today: Optional[datetime.date] = None,
    max_age_days: Optional[int] = None,
) -> Optional[str]:
    """
    Check the freshnessValidatedDate field.

    Args:
        text: Document source
        today: Reference date (default: today)
        max_age_days: Optional maximum age of the validation date

    Returns:
        Error message, or None if the field is valid
    """
    fields, error = frontmatter(text)
    if error is not None:
        # Reported separately as a frontmatter error
        return None

    if FRESHNESS_FIELD not in fields:
        return f"Missing required frontmatter field: {FRESHNESS_FIELD}"

    value = fields[FRESHNESS_FIELD]
    if isinstance(value, str) and value.strip() == "never":
        return None

    validated = _as_date(value)
    if validated is None:
        return (
            f"{FRESHNESS_FIELD} must be a date in the format YYYY-MM-DD or `never`, "
            f"found: {value}"
        )

    today = today or datetime.date.today()
    if validated > today:
        return f"{FRESHNESS_FIELD} cannot be in the future, found: {validated.isoformat()}"

    if max_age_days is not None and (today - validated).days > max_age_days:
        return (
            f"{FRESHNESS_FIELD} is older than {max_age_days} days "
            f"({validated.isoformat()}); review the page and update the date"
        )

    return None


def validate_release_date(text: str) -> Optional[str]:
    """
    Check the releaseDate field.

    Returns:
        Error message, or None if the field is valid
    """
    fields, error = frontmatter(text)
    if error is not None:
        return None

    if RELEASE_DATE_FIELD not in fields:
        return f"Missing required frontmatter field: {RELEASE_DATE_FIELD}"

    value = fields[RELEASE_DATE_FIELD]
    if _as_date(value) is None:
        return f"{RELEASE_DATE_FIELD} must be a date in the format YYYY-MM-DD, found: {value}"

    return None


def should_validate_freshness_date(file_path: Union[str, Path], excluded_paths: Iterable[str]) -> bool:
    """False when the path contains any of the excluded path fragments."""
    path = Path(file_path).as_posix()
    return not any(excluded in path for excluded in excluded_paths)


def should_validate_release_date(file_path: Union[str, Path], pattern: str = DEFAULT_RELEASE_DATE_PATTERN) -> bool:
    """True when the path is a release note, what's new post or security bulletin."""
    return re.search(pattern, Path(file_path).as_posix()) is not None
