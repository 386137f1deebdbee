"""
Completion Scorer

Computes the 0-100 completion percentage of an application from its five
sections. Each section contributes

    WEIGHT * present_required_fields / len(REQUIRED_FIELDS)

and the total is rounded half-up and clamped to [0, 100].

The score is a pure function of the current section contents. It is
recomputed in full on every section write and on explicit recompute
requests; it is never patched incrementally.
"""

import math
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel

from .sections import ApplicationSections, SectionModel


def is_present(value: Any) -> bool:
    """
    Decide whether a field value counts as filled in.

    - None is absent
    - strings count when they contain non-whitespace
    - lists and dicts count when at least one element is present
    - nested records count when any of their fields is present
    - numbers (zero included) and booleans always count
    """
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, BaseModel):
        return any(is_present(v) for v in value.__dict__.values())
    if isinstance(value, Mapping):
        return any(is_present(v) for v in value.values())
    if isinstance(value, list | tuple | set):
        return any(is_present(v) for v in value)
    return True


def missing_fields(section: SectionModel) -> list[str]:
    """Required fields of a section that are not present."""
    return [name for name in section.REQUIRED_FIELDS if not is_present(getattr(section, name))]


def section_ratio(section: SectionModel) -> float:
    """Fraction of the section's required fields that are present."""
    required = section.REQUIRED_FIELDS
    if not required:
        return 1.0
    return (len(required) - len(missing_fields(section))) / len(required)


def section_breakdown(sections: ApplicationSections) -> dict[str, float]:
    """Weighted contribution of each section, keyed by column name."""
    return {
        name: section.WEIGHT * section_ratio(section) for name, section in sections.iter_sections()
    }


def calculate_completion(sections: ApplicationSections) -> int:
    """Return the completion percentage for the given section contents."""
    total = sum(section_breakdown(sections).values())
    return max(0, min(100, math.floor(total + 0.5)))

