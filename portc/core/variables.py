# SPDX-License-Identifier: MIT
"""Variable store operations.

A port environment starts life as an ordered list of (name, value)
pairs in which a name may appear several times, and ends as a mapping
with exactly one fully expanded value per name. The steps in between
are:

1. filter_by_platform() drops arch-conditional entries that do not
   apply to the current platform.
2. apply_defaults() lays the built-in defaults under the process
   environment.
3. merge_sequential() folds repeated names into one value, chaining
   self-references ("$CFLAGS -O2") onto the previous definition.
4. expand_all() substitutes cross references until nothing changes.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass

from portc.configure.platform import is_arch
from portc.core.errors import ConfigureError, ExpansionLimitError
from portc.core.subst import expand_variable, is_expandable, references, refers_to

logger = logging.getLogger(__name__)

DEFAULT_MAX_PASSES = 10


@dataclass(frozen=True)
class Unconditional:
    """An entry that applies on every platform."""

    name: str
    value: str


@dataclass(frozen=True)
class Conditional:
    """An entry that applies only where pattern matches the platform id.

    Attributes:
        pattern: Regular expression searched for in the platform id,
            e.g. "linux.*-64$" or "win32".
    """

    pattern: str
    name: str
    value: str

    def applies_to(self, platform_id: str) -> bool:
        return is_arch(self.pattern, platform_id)


EnvEntry = Unconditional | Conditional


def entry_from_tuple(item: Sequence[str]) -> EnvEntry:
    """Convert a configuration tuple into an entry.

    Accepts (name, value) and (pattern, name, value).

    Raises:
        ConfigureError: For any other shape.
    """
    if isinstance(item, (Unconditional, Conditional)):
        return item
    if isinstance(item, str) or not all(isinstance(part, str) for part in item):
        raise ConfigureError(f"invalid port_env entry: {item!r}")
    if len(item) == 2:
        return Unconditional(item[0], item[1])
    if len(item) == 3:
        return Conditional(item[0], item[1], item[2])
    raise ConfigureError(f"invalid port_env entry: {item!r}")


def filter_by_platform(
    entries: Iterable[EnvEntry | Sequence[str]], platform_id: str
) -> list[tuple[str, str]]:
    """Keep the entries that apply to platform_id, in order."""
    result: list[tuple[str, str]] = []
    for item in entries:
        entry = entry_from_tuple(item)
        if isinstance(entry, Conditional) and not entry.applies_to(platform_id):
            continue
        result.append((entry.name, entry.value))
    return result


def apply_defaults(
    base_vars: Iterable[tuple[str, str]],
    default_vars: Iterable[tuple[str, str]],
) -> dict[str, str]:
    """Merge defaults under base_vars.

    For a name defined on both sides, a default that references
    variables is expanded with the base value for its own name (so a
    default of "-m64 $CFLAGS" extends an inherited CFLAGS); any other
    default loses to the base value. Names found on one side only are
    kept unchanged. A name repeated within one side keeps its last
    value.
    """
    merged = dict(base_vars)
    for name, default in dict(default_vars).items():
        if name not in merged:
            merged[name] = default
        elif is_expandable(default):
            merged[name] = expand_variable(default, name, merged[name])
    return merged


def merge_sequential(pairs: Iterable[tuple[str, str]]) -> dict[str, str]:
    """Fold (name, value) pairs into one value per name, left to right.

    A self-reference in the first definition of a name expands to the
    empty string; in any later definition it expands to the value
    accumulated so far.

    Example:
        merge_sequential([("X", "a"), ("X", "$X-b")]) == {"X": "a-b"}
        merge_sequential([("X", "$X-b")]) == {"X": "-b"}
    """
    merged: dict[str, str] = {}
    for name, value in pairs:
        if name in merged:
            merged[name] = expand_variable(value, name, merged[name])
        else:
            merged[name] = expand_variable(value, name, "")
    return merged


def expand_all(
    variables: Mapping[str, str], max_passes: int = DEFAULT_MAX_PASSES
) -> dict[str, str]:
    """Expand cross references between variables until nothing changes.

    Each pass visits the pending values in order. All names referenced
    by one value are substituted in a single step, using the store as
    it is at that moment. A value that changed is revisited in the
    next pass, as is a value that has come to reference its own name:
    self-references are gone after merge_sequential(), so one that
    reappears here can only come from a reference cycle.

    References to undefined names are left in place.

    Args:
        variables: Singly-defined variables.
        max_passes: Upper bound on the number of passes.

    Returns:
        The expanded variables, sorted by name.

    Raises:
        ExpansionLimitError: If values were still changing after
            max_passes passes.
    """
    store = dict(variables)
    pending = list(store.items())

    for pass_number in range(1, max_passes + 1):
        revisit: list[tuple[str, str]] = []
        for name, value in pending:
            names = references(value)
            if not names:
                continue
            expanded = value
            for ref in names:
                if ref in store:
                    expanded = expand_variable(expanded, ref, store[ref])
            if expanded != value:
                store[name] = expanded
                revisit.append((name, expanded))
            elif refers_to(expanded, name):
                revisit.append((name, expanded))
        if not revisit:
            logger.debug("Variables settled after %d pass(es)", pass_number)
            return dict(sorted(store.items()))
        pending = revisit

    raise ExpansionLimitError(max_passes, [name for name, _ in pending])
