"""
URI templates of the ``scheme://path/{param}/more`` form.

Only bare ``{name}`` placeholders are understood; there is no list or
operator expansion. Substituted values are inserted as-is, without
percent-encoding.
"""

from __future__ import annotations

import re
from typing import Callable, Optional

from .errors import UriTemplateError

PLACEHOLDER = re.compile(r"\{([^}]+)\}")


def placeholders(uri: str) -> list[str]:
    """Names of every placeholder in *uri*, left to right, repeats kept."""
    return PLACEHOLDER.findall(uri)


def is_template(uri: str) -> bool:
    """Whether *uri* contains at least one placeholder."""
    return PLACEHOLDER.search(uri) is not None


def resolve(uri: str, supplier: Callable[[str], Optional[str]]) -> str:
    """Fill every placeholder in *uri* with a value from *supplier*.

    The supplier is called once per occurrence, so a name that appears
    twice is asked for twice. An empty string is a valid value.

    Args:
        uri: Literal URI or URI template.
        supplier: Maps a placeholder name to its value.

    Returns:
        The concrete URI. A literal URI is returned unchanged.

    Raises:
        UriTemplateError: If the supplier returns None for a placeholder.
    """

    def _substitute(match: re.Match) -> str:
        name = match.group(1)
        value = supplier(name)
        if value is None:
            raise UriTemplateError(f"No value for '{name}' in {uri}")
        return str(value)

    return PLACEHOLDER.sub(_substitute, uri)


def _compile(template: str) -> re.Pattern:
    pattern = ""
    seen: set[str] = set()
    pos = 0
    for match in PLACEHOLDER.finditer(template):
        pattern += re.escape(template[pos:match.start()])
        name = match.group(1)
        group = "p_" + re.sub(r"\W", "_", name)
        if name in seen:
            pattern += f"(?P={group})"
        else:
            pattern += f"(?P<{group}>[^/]+)"
            seen.add(name)
        pos = match.end()
    pattern += re.escape(template[pos:])
    return re.compile(pattern)


def match(template: str, uri: str) -> Optional[dict[str, str]]:
    """Extract placeholder values from a concrete URI.

    Each placeholder matches one non-empty path segment. A repeated
    placeholder must carry the same text at every occurrence.

    Returns:
        Mapping of placeholder name to value, or None if *uri* does not
        fit *template*.
    """
    found = _compile(template).fullmatch(uri)
    if found is None:
        return None
    return {
        name: found.group("p_" + re.sub(r"\W", "_", name))
        for name in dict.fromkeys(placeholders(template))
    }
