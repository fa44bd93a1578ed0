"""Subject data source for one class section."""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from .api import ApiClient
from .config import Config
from .hierarchy import Item

logger = logging.getLogger(__name__)

SourceListener = Callable[[List[Item]], None]


def item_from_record(record: Dict[str, Any]) -> Item:
    """Build an :class:`Item` from an API or config record.

    Accepts both ``parent_id`` and the API's ``parent_subject_id``.
    """
    parent_id = record.get('parent_id', record.get('parent_subject_id'))
    order = record.get('order')
    return Item(
        id=str(record['id']),
        parent_id=str(parent_id) if parent_id not in (None, '') else None,
        order=int(order) if order is not None else 0,
        name=str(record.get('name') or record.get('title') or record['id']),
    )


def items_from_records(records: Iterable[Dict[str, Any]]) -> List[Item]:
    items = []
    for record in records:
        try:
            items.append(item_from_record(record))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping malformed subject record {record!r}: {e}")
    return items


def load_subjects_from_config(config: Config, section_id: str) -> List[Item]:
    """Return the subjects stored for ``section_id`` with saved orders applied."""
    subjects = config.get_setting('subjects', {})
    records = subjects.get(str(section_id), []) if isinstance(subjects, dict) else []
    orders = config.get_subject_orders(section_id)
    items = []
    for item in items_from_records(records):
        if item.id in orders:
            item = item.with_order(int(orders[item.id]))
        items.append(item)
    return items


class HttpSubjectLoader:
    """Fetches ``GET /subjects?class_section_id=...``."""

    def __init__(self, client: ApiClient, section_id: str, per_page: int = 100):
        self.client = client
        self.section_id = section_id
        self.per_page = per_page

    async def __call__(self) -> List[Item]:
        response = await self.client.request_json_async(
            'GET',
            '/subjects',
            params={'class_section_id': self.section_id, 'per_page': self.per_page},
        )
        if isinstance(response, dict):
            records = response.get('data') or []
        else:
            records = response or []
        return items_from_records(records)


class SubjectSource:
    """Holds the authoritative subject list and tells listeners when it changes."""

    def __init__(self, section_id: str, loader: Optional[Callable[[], Any]] = None, items: Iterable[Item] = ()):
        self.section_id = section_id
        self.loader = loader
        self._items: List[Item] = list(items)
        self._listeners: List[SourceListener] = []

    @property
    def items(self) -> List[Item]:
        return list(self._items)

    def add_listener(self, listener: SourceListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: SourceListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def set_items(self, items: Iterable[Item]) -> None:
        self._items = list(items)
        for listener in list(self._listeners):
            listener(self.items)

    async def refresh(self) -> List[Item]:
        """Reload through ``loader`` (sync or async) and notify listeners."""
        if self.loader is None:
            return self.items
        result = self.loader()
        if inspect.isawaitable(result):
            result = await result
        self.set_items(result)
        logger.debug(f"Loaded {len(self._items)} subjects for section {self.section_id}")
        return self.items


def source_from_config(config: Config, section_id: str) -> SubjectSource:
    """Pick the HTTP loader when an API URL is configured, the config file otherwise."""
    client = ApiClient.from_config(config)
    if client is not None:
        loader = HttpSubjectLoader(client, section_id)
    else:
        def loader() -> List[Item]:
            return load_subjects_from_config(config, section_id)
    return SubjectSource(section_id, loader)
