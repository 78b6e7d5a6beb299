"""Cache key construction and wildcard patterns.

Keys are opaque strings built by callers, e.g. ``company_details_42``.
A key ending in ``*`` is a pattern that matches every key sharing the
text before it; there is no other glob syntax.
"""

from typing import Any

WILDCARD = "*"
_SEPARATOR = "_"


def make_key(*parts: Any) -> str:
    """Join key parts with underscores.

    Example:
        make_key("company_details", 42)        # "company_details_42"
        make_key("employees", company_id, None)  # "employees_7_all"
        make_key("companies", WILDCARD)          # "companies_*"
    """
    if not parts:
        raise ValueError("make_key needs at least one part")

    rendered = ["all" if part is None else str(part) for part in parts]
    if rendered[-1] == WILDCARD:
        return _SEPARATOR.join(rendered[:-1]) + _SEPARATOR + WILDCARD
    return _SEPARATOR.join(rendered)


def is_pattern(key: str) -> bool:
    """Check if a key is a trailing-wildcard pattern."""
    return key.endswith(WILDCARD)


def pattern_prefix(pattern: str) -> str:
    """Strip the trailing wildcard from a pattern."""
    if not is_pattern(pattern):
        raise ValueError(f"Not a wildcard pattern: {pattern!r}")
    return pattern[: -len(WILDCARD)]
