# SPDX-License-Identifier: MIT
"""Variable reference primitives for portc.

Supported syntax:
- Simple variables: $VAR (the name ends at the first non-word character)
- Braced variables: ${VAR}

Unlike a shell, nothing here fails on an undefined name: references
that cannot be resolved are left in the text as they are, so a later
pass (or the shell running the final command) can still see them.
"""

from __future__ import annotations

import re

# Match: ${var}, $var
_REFERENCE_PATTERN = re.compile(r"\$\{?(\w+)\}?")


def _variable_pattern(name: str) -> re.Pattern[str]:
    escaped = re.escape(name)
    return re.compile(rf"\${escaped}(?!\w)|\$\{{{escaped}\}}")


def is_expandable(value: str) -> bool:
    """Return True if value contains a '$' reference marker."""
    return "$" in value


def references(value: str) -> list[str]:
    """Return the unique variable names referenced in value, sorted.

    Example:
        references("$CC -c ${CFLAGS} $CC") == ["CC", "CFLAGS"]
    """
    return sorted(set(_REFERENCE_PATTERN.findall(value)))


def refers_to(value: str, name: str) -> bool:
    """Return True if value contains $name or ${name}."""
    return _variable_pattern(name).search(value) is not None


def expand_variable(value: str, name: str, replacement: str) -> str:
    """Replace every reference to name in value with replacement.

    Both $NAME and ${NAME} are replaced. $NAMEX is a reference to
    NAMEX, not to NAME, and is left alone. The replacement is
    inserted literally.

    Args:
        value: Text containing references.
        name: Variable name to replace.
        replacement: Text to insert.

    Returns:
        The expanded text.
    """
    if not is_expandable(value):
        return value
    return _variable_pattern(name).sub(lambda _match: replacement, value)
