# singularity/codec.py
"""
Converts between live item containers and nested ItemRecord trees.

serialize() never mutates the container. Items that fail the can_store
predicate, at any depth, are left where they are and handed back to the
caller, who is responsible for returning them to their owner.
"""
from __future__ import annotations
import logging
from typing import Callable, List, Optional, Tuple

from .catalog import ItemCatalog
from .item import Item, ItemContainer
from .records import ItemRecord

log = logging.getLogger(__name__)

CanStore = Callable[[Item], bool]


def serialize(container: ItemContainer, can_store: Optional[CanStore] = None) -> Tuple[List[ItemRecord], List[Item]]:
    """Returns (records, rejected items) for every occupied slot of a container."""
    rejected: List[Item] = []
    records = _serialize_container(container, can_store, rejected)
    return records, rejected


def _serialize_container(container: ItemContainer, can_store: Optional[CanStore], rejected: List[Item]) -> List[ItemRecord]:
    records = []
    for item in container.items:
        if can_store is not None and not can_store(item):
            rejected.append(item)
            continue
        records.append(_serialize_item(item, can_store, rejected))
    return records


def _serialize_item(item: Item, can_store: Optional[CanStore], rejected: List[Item]) -> ItemRecord:
    record = ItemRecord(
        item_id=item.template_id,
        amount=item.amount,
        skin=item.skin,
        condition=item.condition,
        position=item.position,
        text=item.text,
        name=item.name,
    )
    if item.magazine is not None:
        record.ammo = item.magazine.contents
        record.ammo_type = item.magazine.ammo_shortname
    if item.contents is not None:
        record.contents = _serialize_container(item.contents, can_store, rejected)
    return record


def deserialize(records: List[ItemRecord], container: ItemContainer, catalog: ItemCatalog) -> List[ItemRecord]:
    """
    Recreates records as live items inside a container.

    Records keep their stored slot when it exists and is free. The rest go to
    the first free slot. Records that fit nowhere are returned untouched.
    Records with an unknown item id are skipped with a warning.
    """
    unplaced: List[ItemRecord] = []
    deferred: List[Tuple[ItemRecord, Item]] = []

    for record in records:
        item = build_item(record, catalog)
        if item is None:
            continue
        if not container.insert(item, record.position):
            deferred.append((record, item))

    for record, item in deferred:
        if not container.insert(item):
            unplaced.append(record)

    if unplaced:
        log.info("%d stored record(s) did not fit a container of %d slots.", len(unplaced), container.capacity)
    return unplaced


def build_item(record: ItemRecord, catalog: ItemCatalog) -> Optional[Item]:
    """Creates one live item, with its magazine and contents, from a record."""
    item = catalog.create_item(record.item_id, record.amount, record.skin)
    if item is None:
        log.warning("Skipping stored item with unknown id %s (amount %d).", record.item_id, record.amount)
        return None

    item.condition = record.condition
    item.text = record.text
    item.name = record.name

    if item.magazine is not None and record.ammo_type:
        ammo_template = catalog.find(record.ammo_type)
        if ammo_template is not None:
            item.magazine.ammo_type = ammo_template
            item.magazine.contents = record.ammo
        else:
            log.warning("Unknown ammo type '%s' on stored %s, magazine left empty.", record.ammo_type, item.shortname)

    if record.contents:
        if item.contents is None:
            log.warning("Stored %s has %d nested record(s) but holds no contents, skipping them.",
                        item.shortname, len(record.contents))
        else:
            lost = deserialize(record.contents, item.contents, catalog)
            if lost:
                log.warning("%d nested record(s) did not fit inside %s.", len(lost), item.shortname)
    return item
