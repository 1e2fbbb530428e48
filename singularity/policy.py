# singularity/policy.py
"""
Intake policy: which items may enter storage.
"""
import logging
from typing import Iterable, Optional

import config
from .item import Item

log = logging.getLogger(__name__)


class IntakePolicy:
    """Blacklist first, then the category allow-list. The first failing check gives the reason."""
    def __init__(self, blacklist: Iterable[str] = config.BLACKLISTED_ITEMS,
                 allow_blacklisted: bool = config.ALLOW_BLACKLISTED_ITEMS,
                 allowed_categories: Optional[Iterable[str]] = config.ALLOWED_CATEGORIES):
        self.blacklist = set(blacklist or ())
        self.allow_blacklisted = allow_blacklisted
        self.allowed_categories = set(allowed_categories) if allowed_categories is not None else None

    def rejection_reason(self, item: Item) -> Optional[str]:
        if not self.allow_blacklisted and item.shortname in self.blacklist:
            return f"{item.display_name} cannot be stored (blacklisted)."
        if self.allowed_categories is not None and item.category not in self.allowed_categories:
            return f"{item.category} items cannot be stored."
        return None

    def can_store(self, item: Item) -> bool:
        return self.rejection_reason(item) is None

    def describe(self) -> str:
        if self.allow_blacklisted or not self.blacklist:
            return "All items may be stored."
        return f"These items cannot be stored: {', '.join(sorted(self.blacklist))}."
