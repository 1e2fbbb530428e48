# singularity/inventory.py
"""
A player's carried inventory. Also serves as the scrap ledger used by the
tier economy: counting and all-or-nothing deduction of an item type.
"""
import logging

import config
from .item import Item, ItemContainer

log = logging.getLogger(__name__)


class PlayerInventory:
    def __init__(self, main_slots: int = config.MAIN_INVENTORY_SLOTS,
                 belt_slots: int = config.BELT_SLOTS):
        self.main = ItemContainer(main_slots)
        self.belt = ItemContainer(belt_slots)

    def count(self, shortname: str) -> int:
        """Amount of an item type held in the main inventory and belt."""
        return self.main.count(shortname, recursive=False) + self.belt.count(shortname, recursive=False)

    def take(self, shortname: str, amount: int) -> bool:
        """
        Removes `amount` of an item type, main inventory first, then belt.
        Either the whole amount is removed or nothing is.
        """
        if amount <= 0:
            return True
        if self.count(shortname) < amount:
            return False

        remaining = amount
        for container in (self.main, self.belt):
            removed = container.take(shortname, remaining, recursive=False)
            remaining -= sum(item.amount for item in removed)
            if remaining <= 0:
                break
        if remaining > 0:
            log.error("Inventory take of %d %s came up %d short after a successful count.", amount, shortname, remaining)
        return True

    def give_item(self, item: Item) -> bool:
        """Stacks an item into the main inventory, then the belt. False if some of it did not fit."""
        leftover = self.main.give(item)
        if leftover > 0:
            leftover = self.belt.give(item)
        return leftover == 0
