# singularity/catalog.py
"""
The host item catalog: resolves item ids and shortnames to templates
and creates live items from them.
"""
from __future__ import annotations
import logging
from typing import Any, Dict, Iterable, List, Optional, Union

from .item import Item, parse_stats
from .definitions import item_defs

log = logging.getLogger(__name__)


class ItemCatalog:
    """Item templates keyed by numeric id, with a shortname index."""
    def __init__(self, templates: Optional[Iterable[Dict[str, Any]]] = None):
        self._by_id: Dict[int, Dict[str, Any]] = {}
        self._by_shortname: Dict[str, Dict[str, Any]] = {}
        if templates:
            self.load(templates)

    def load(self, rows: Iterable[Any]) -> int:
        """Replaces the catalog with the given template rows. Returns the number loaded."""
        self._by_id.clear()
        self._by_shortname.clear()
        for row in rows:
            template = dict(row)
            template['stats'] = parse_stats(template.get('stats'))
            self._by_id[template['id']] = template
            self._by_shortname[template['shortname']] = template
        log.info("Item catalog loaded with %d templates.", len(self._by_id))
        return len(self._by_id)

    def __len__(self) -> int:
        return len(self._by_id)

    @property
    def templates(self) -> List[Dict[str, Any]]:
        return list(self._by_id.values())

    def find(self, identifier: Union[int, str, None]) -> Optional[Dict[str, Any]]:
        """Looks up a template by id or shortname."""
        if identifier is None:
            return None
        if isinstance(identifier, int):
            return self._by_id.get(identifier)
        if isinstance(identifier, str) and identifier.lstrip('-').isdigit():
            return self._by_id.get(int(identifier))
        return self._by_shortname.get(identifier)

    def category_of(self, identifier: Union[int, str]) -> str:
        template = self.find(identifier)
        if not template:
            return item_defs.CATEGORY_MISC
        return template.get('category') or item_defs.CATEGORY_MISC

    def create_item(self, identifier: Union[int, str], amount: int = 1, skin: int = 0) -> Optional[Item]:
        """Creates a live item, or None when the catalog has no such template."""
        template = self.find(identifier)
        if template is None:
            return None
        if amount <= 0:
            log.warning("Refusing to create %s with non-positive amount %d.", identifier, amount)
            return None
        return Item(template, amount, skin)
