"""Respondent categories and their display labels."""
from __future__ import annotations

import logging
from enum import Enum
from typing import Optional, Union

logger = logging.getLogger(__name__)


class Category(str, Enum):
    """Closed set of respondent types.

    Declaration order is significant: it is the fixed enumeration order used
    for deterministic tie-breaks in analytics.
    """

    EMPLOYEE = "employee"
    STAKEHOLDER = "stakeholder"
    CUSTOMER = "customer"


# Unknown categories fail closed to this graph instead of raising.
DEFAULT_CATEGORY: Category = Category.EMPLOYEE

_LABELS = {
    Category.EMPLOYEE: "Employee",
    Category.STAKEHOLDER: "Stakeholder",
    Category.CUSTOMER: "Customer",
}


def parse_category(value: Union[Category, str, None]) -> Optional[Category]:
    """Return the matching :class:`Category` or *None* if *value* is unknown."""
    if isinstance(value, Category):
        return value
    if not value:
        return None
    try:
        return Category(str(value).strip().lower())
    except ValueError:
        return None


def resolve_category(value: Union[Category, str, None]) -> Category:
    """Return the category for *value*, falling back to :data:`DEFAULT_CATEGORY`.

    The fallback is logged so a caller passing a bad value does not go
    unnoticed. Callers needing strict validation should use
    :func:`parse_category` and handle *None* themselves.
    """
    category = parse_category(value)
    if category is None:
        logger.warning(
            "Unknown survey category %r; falling back to '%s'",
            value,
            DEFAULT_CATEGORY.value,
        )
        return DEFAULT_CATEGORY
    return category


def label(category: Category) -> str:
    """Singular display label, e.g. ``Employee``."""
    return _LABELS[category]


def plural_label(category: Category) -> str:
    """Plural display label, e.g. ``Customers``."""
    return f"{_LABELS[category]}s"
