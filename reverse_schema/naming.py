"""Naming helpers shared by the enum extractor and the model assembler."""

import re
from typing import Collection

_WORD_SEPARATORS = re.compile(r"[_\-\s]+")
_VOWELS = "aeiou"


def ucfirst(value: str) -> str:
    return value[:1].upper() + value[1:]


def lcfirst(value: str) -> str:
    return value[:1].lower() + value[1:]


def to_pascal_case(value: str) -> str:
    """Convert a snake/kebab-case name to PascalCase.

    Only the first letter of each word is changed, so ``user_IDs``
    becomes ``UserIDs``.
    """
    return "".join(ucfirst(word) for word in _WORD_SEPARATORS.split(value) if word)


def to_camel_case(value: str) -> str:
    """Convert a column name to a camelCase property name."""
    words = [w for w in _WORD_SEPARATORS.split(value) if w]
    if not words:
        return value
    return lcfirst(words[0]) + "".join(ucfirst(w) for w in words[1:])


def singularize(value: str) -> str:
    """Very small English singularizer used for entity names."""
    if value.endswith("ies") and len(value) > 3:
        return value[:-3] + "y"
    if value.endswith("s") and not value.endswith("ss"):
        return value[:-1]
    return value


def pluralize(value: str) -> str:
    """Inverse of singularize for collection property names."""
    if not value:
        return value
    lower = value.lower()
    if lower.endswith("y") and len(value) > 1 and lower[-2] not in _VOWELS:
        return value[:-1] + "ies"
    if lower.endswith(("s", "x", "z", "ch", "sh")):
        return value + "es"
    return value + "s"


def entity_name(table_name: str) -> str:
    """Derive the entity class name for a table (``user_roles`` -> ``UserRole``)."""
    return singularize(to_pascal_case(table_name))


def unique_name(base: str, used: Collection[str], start: int = 2) -> str:
    """Return ``base`` or the first ``base<N>`` (N >= start) not in ``used``."""
    if base not in used:
        return base
    counter = start
    while f"{base}{counter}" in used:
        counter += 1
    return f"{base}{counter}"
