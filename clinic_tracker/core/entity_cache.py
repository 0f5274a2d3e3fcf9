"""
In-memory entity collections.

Each category is loaded wholesale from the store on first use and kept
until invalidated, either by a local mutation or by the real-time change
feed.
"""

import logging
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

# Category name -> loader taking the store client
COLLECTION_LOADERS: Dict[str, Callable[[Any], List[Any]]] = {
    'patients': lambda store: store.list_patients(),
    'observations': lambda store: store.list_observations(),
    'consultations': lambda store: store.list_consultations(),
    'todos': lambda store: store.list_todos(),
    'work_sessions': lambda store: store.list_work_sessions(),
}


class CollectionCache:
    """Lazily loaded, invalidation-driven entity collections."""

    def __init__(self, store):
        """
        Initialize the cache.

        Args:
            store: Store client exposing the list_* queries
        """
        self.store = store
        self._collections: Dict[str, List[Any]] = {}

    def get(self, category: str) -> List[Any]:
        """
        Return a loaded collection, fetching it if needed.

        Raises:
            KeyError: if the category is unknown
            StoreError: if the fetch fails (nothing is cached then)
        """
        if category not in COLLECTION_LOADERS:
            raise KeyError(f"Unknown collection: {category}")
        if category not in self._collections:
            self._collections[category] = COLLECTION_LOADERS[category](self.store)
            logger.debug(f"COLLECTION_LOADED - {category}: {len(self._collections[category])} item(s)")
        return self._collections[category]

    def is_loaded(self, category: str) -> bool:
        return category in self._collections

    def invalidate(self, category: str) -> None:
        self._collections.pop(category, None)

    def invalidate_all(self) -> None:
        self._collections.clear()

    def handle_change(self, event: Dict[str, Any]) -> bool:
        """
        React to a change-feed notification by dropping the affected table.

        Args:
            event: Change payload with a "table" key

        Returns:
            True if a known collection was invalidated
        """
        table = event.get('table')
        if table not in COLLECTION_LOADERS:
            logger.warning(f"CHANGE_IGNORED - Unknown table in change event: {table}")
            return False
        self.invalidate(table)
        logger.info(f"COLLECTION_INVALIDATED - {table} ({event.get('eventType', 'change')})")
        return True
