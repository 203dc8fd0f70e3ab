"""Product category catalogue.

Each product belongs to one primary category, assigned explicitly by its owner.
Category keys are what products and snapshots carry; display names are for
humans.
"""

from __future__ import annotations

import re
from types import MappingProxyType

PRODUCT_CATEGORIES = MappingProxyType(
    {
        "TECH_SAAS": "SaaS & Productivity",
        "FINTECH": "Finance & Payments",
        "ECOMMERCE": "E-Commerce & Retail",
        "HEALTH": "Health & Wellness",
        "EDUCATION": "Education & Learning",
        "FOOD": "Food & Beverage",
        "CONSUMER_ELECTRONICS": "Consumer Electronics",
        "GAMING": "Gaming & Entertainment",
        "SOCIAL": "Social & Communication",
        "MARKETPLACE": "Marketplace & Platform",
        "DEVELOPER_TOOLS": "Developer Tools",
        "OTHER": "Other",
    }
)

CATEGORY_KEYS: tuple[str, ...] = tuple(PRODUCT_CATEGORIES)

_CATEGORY_KEY_RE = re.compile(r"[A-Z0-9_]+")


def category_name(key: str) -> str:
    """Display name for a category key; unknown keys display as themselves."""
    return PRODUCT_CATEGORIES.get(key, key)


def is_category_key(value: str) -> bool:
    """Whether ``value`` is safe to use as a category key (and a directory name)."""
    return _CATEGORY_KEY_RE.fullmatch(value) is not None


def category_key(value: str) -> str | None:
    """Key for a category given either as a key or as a catalogue display name.

    Returns None when ``value`` is neither.
    """
    if is_category_key(value):
        return value
    for key, name in PRODUCT_CATEGORIES.items():
        if name == value:
            return key
    return None
