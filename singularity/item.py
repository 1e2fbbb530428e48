# singularity/item.py
"""
Represents live item instances and the slot containers that hold them.
"""
from __future__ import annotations
import json
import itertools
import logging
from typing import Any, Callable, Dict, Iterator, List, Optional

from .definitions import item_defs

log = logging.getLogger(__name__)

_uid_sequence = itertools.count(1)

# Listeners receive the container that changed.
ContainerListener = Callable[["ItemContainer"], None]


def parse_stats(stats_data: Any) -> Dict[str, Any]:
    """Template stats arrive as a JSON string from the database or as a dict from definitions."""
    if isinstance(stats_data, str) and stats_data:
        try:
            return json.loads(stats_data)
        except json.JSONDecodeError:
            log.warning("Malformed stats JSON on item template: %r", stats_data)
            return {}
    if isinstance(stats_data, dict):
        return stats_data
    return {}


class Magazine:
    """The loaded ammunition of a ranged weapon."""
    def __init__(self, capacity: int, contents: int = 0, ammo_type: Optional[Dict[str, Any]] = None):
        self.capacity = capacity
        self.contents = contents
        self.ammo_type = ammo_type

    @property
    def ammo_shortname(self) -> Optional[str]:
        return self.ammo_type.get('shortname') if self.ammo_type else None

    def __repr__(self) -> str:
        return f"<Magazine {self.contents}/{self.capacity} {self.ammo_shortname}>"


class Item:
    """
    A live item stack. Combines shared template data with per-instance state.
    """
    def __init__(self, template: Dict[str, Any], amount: int = 1, skin: int = 0):
        if not template:
            raise ValueError("Item requires template data.")

        # --- Instance Data ---
        self.uid: int = next(_uid_sequence)
        self.amount: int = amount
        self.skin: int = skin
        self.condition: float = 1.0  # 0.0 - 1.0 fraction
        self.text: Optional[str] = None
        self.name: Optional[str] = None  # Player-given name, overrides the template name
        self.position: int = -1
        self.parent: Optional[ItemContainer] = None

        # --- Template Data ---
        self._template = template
        self._stats = parse_stats(template.get('stats'))

        self.contents: Optional[ItemContainer] = None
        if self.capacity > 0:
            self.contents = ItemContainer(self.capacity, owner_item=self)

        self.magazine: Optional[Magazine] = None
        if self.is_ranged_weapon:
            self.magazine = Magazine(self._stats.get('magazine_capacity', 0))

    @property
    def template(self) -> Dict[str, Any]:
        return self._template

    @property
    def template_id(self) -> int:
        return self._template.get('id', 0)

    @property
    def shortname(self) -> str:
        return self._template.get('shortname', '')

    @property
    def display_name(self) -> str:
        return self.name or self._template.get('name', 'an unknown item')

    @property
    def category(self) -> str:
        return self._template.get('category', item_defs.CATEGORY_MISC)

    @property
    def item_type(self) -> str:
        return (self._template.get('type') or item_defs.GENERAL).upper()

    @property
    def max_stack(self) -> int:
        return self._stats.get('max_stack', item_defs.DEFAULT_MAX_STACK)

    @property
    def capacity(self) -> int:
        """Sub-container slots, 0 for items that hold nothing."""
        return self._stats.get('capacity', 0)

    @property
    def is_ranged_weapon(self) -> bool:
        return self.item_type == item_defs.RANGED_WEAPON

    def can_stack_with(self, other: "Item") -> bool:
        return (
            other is not self
            and self.template_id == other.template_id
            and self.skin == other.skin
            and self.max_stack > 1
            and self.contents is None
            and self.magazine is None
        )

    def split(self, amount: int) -> "Item":
        """Splits part of this stack off into a new item that belongs to no container."""
        if amount <= 0 or amount >= self.amount:
            raise ValueError(f"Cannot split {amount} from a stack of {self.amount}.")
        clone = Item(self._template, amount, self.skin)
        clone.condition = self.condition
        self.amount -= amount
        if self.parent:
            self.parent.mark_dirty()
        return clone

    def remove_from_parent(self) -> bool:
        if self.parent is None:
            return False
        return self.parent.remove(self)

    def __repr__(self) -> str:
        return f"<Item {self.uid} {self.shortname} x{self.amount} @{self.position}>"


class ItemContainer:
    """
    A fixed number of item slots. Change listeners fire after every mutation,
    and changes inside a nested item's contents bubble up to its parent.
    """
    def __init__(self, capacity: int, owner_item: Optional[Item] = None):
        self.capacity = capacity
        self.owner_item = owner_item
        self._slots: Dict[int, Item] = {}
        self._listeners: List[ContainerListener] = []
        self._notifying = False

    # --- Queries ---
    def __len__(self) -> int:
        return len(self._slots)

    def __iter__(self) -> Iterator[Item]:
        return iter(self.items)

    @property
    def items(self) -> List[Item]:
        return [self._slots[pos] for pos in sorted(self._slots)]

    @property
    def is_full(self) -> bool:
        return self.first_free_slot() is None

    def get_slot(self, position: int) -> Optional[Item]:
        return self._slots.get(position)

    def is_valid_slot(self, position: int) -> bool:
        return 0 <= position < self.capacity

    def first_free_slot(self) -> Optional[int]:
        for position in range(self.capacity):
            if position not in self._slots:
                return position
        return None

    def iter_all(self) -> Iterator[Item]:
        """Every item in this container and, depth first, in nested contents."""
        for item in self.items:
            yield item
            if item.contents is not None:
                yield from item.contents.iter_all()

    def count(self, shortname: str, recursive: bool = True) -> int:
        items = self.iter_all() if recursive else self.items
        return sum(item.amount for item in items if item.shortname == shortname)

    # --- Mutation ---
    def insert(self, item: Item, position: Optional[int] = None) -> bool:
        """
        Places a whole item into an empty slot, or the first free slot when no
        position is given. Returns False without side effects if it cannot.
        """
        if position is None:
            position = self.first_free_slot()
            if position is None:
                return False
        elif not self.is_valid_slot(position) or position in self._slots:
            return False

        if item.parent is not None:
            item.parent.remove(item)
        self._slots[position] = item
        item.position = position
        item.parent = self
        self.mark_dirty()
        return True

    def give(self, item: Item) -> int:
        """
        Stacks an item onto matching stacks first, then into free slots.
        Returns the amount that did not fit; that remainder stays on `item`.
        """
        if item.parent is not None:
            item.parent.remove(item)

        for existing in self.items:
            if item.amount <= 0:
                break
            if existing.can_stack_with(item):
                room = existing.max_stack - existing.amount
                if room > 0:
                    moved = min(room, item.amount)
                    existing.amount += moved
                    item.amount -= moved

        while item.amount > 0:
            slot = self.first_free_slot()
            if slot is None:
                break
            if item.amount <= max(item.max_stack, 1):
                self.insert(item, slot)
                return 0
            self.insert(item.split(item.max_stack), slot)

        self.mark_dirty()
        return max(item.amount, 0)

    def remove(self, item: Item) -> bool:
        if self._slots.get(item.position) is not item:
            return False
        del self._slots[item.position]
        item.parent = None
        item.position = -1
        self.mark_dirty()
        return True

    def take_slot(self, position: int) -> Optional[Item]:
        item = self._slots.get(position)
        if item is not None:
            self.remove(item)
        return item

    def take(self, shortname: str, amount: int, recursive: bool = True) -> List[Item]:
        """
        Removes up to `amount` of an item type, newest slots first, splitting
        the last stack if needed. Returns the removed stacks.
        """
        removed: List[Item] = []
        remaining = amount
        for item in reversed(self.items):
            if remaining <= 0:
                break
            if item.shortname == shortname:
                if item.amount <= remaining:
                    self.remove(item)
                    removed.append(item)
                    remaining -= item.amount
                else:
                    removed.append(item.split(remaining))
                    remaining = 0
            elif recursive and item.contents is not None:
                nested = item.contents.take(shortname, remaining, recursive=True)
                removed.extend(nested)
                remaining -= sum(i.amount for i in nested)
        return removed

    def clear(self) -> List[Item]:
        """Empties the container and returns everything that was in it."""
        items = self.items
        for item in items:
            item.parent = None
            item.position = -1
        self._slots.clear()
        if items:
            self.mark_dirty()
        return items

    # --- Change Tracking ---
    def add_listener(self, listener: ContainerListener):
        self._listeners.append(listener)

    def remove_listener(self, listener: ContainerListener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def mark_dirty(self):
        if self._notifying:
            return
        self._notifying = True
        try:
            for listener in list(self._listeners):
                listener(self)
        finally:
            self._notifying = False
        if self.owner_item is not None and self.owner_item.parent is not None:
            self.owner_item.parent.mark_dirty()

    def __repr__(self) -> str:
        return f"<ItemContainer {len(self._slots)}/{self.capacity}>"
