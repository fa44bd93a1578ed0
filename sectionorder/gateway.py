"""Persistence gateways accepting reorder batches."""

import logging
from typing import Any, Dict

from .api import ApiClient
from .config import Config
from .errors import ReorderRejected
from .persist import ReorderBatch

logger = logging.getLogger(__name__)


class HttpReorderGateway:
    """POSTs a batch to ``/subjects/reorder`` for one class section.

    The server replies ``{"success": bool, "message": str}``. Submitting the
    same batch twice leaves the same end state, so callers may resubmit.
    """

    path = '/subjects/reorder'

    def __init__(self, client: ApiClient, section_id: str):
        self.client = client
        self.section_id = section_id

    def build_payload(self, batch: ReorderBatch) -> Dict[str, Any]:
        return {
            'class_section_id': self.section_id,
            'subject_orders': batch.to_payload(),
        }

    async def submit_reorder(self, batch: ReorderBatch) -> None:
        response = await self.client.request_json_async(
            'POST', self.path, payload=self.build_payload(batch)
        )
        if isinstance(response, dict) and response.get('success') is False:
            raise ReorderRejected(response.get('message') or 'Reorder rejected by server')
        logger.debug(f"Server accepted order for section {self.section_id}")


class ConfigReorderGateway:
    """Keeps subject orders in the local JSON configuration."""

    def __init__(self, config: Config, section_id: str):
        self.config = config
        self.section_id = section_id

    async def submit_reorder(self, batch: ReorderBatch) -> None:
        orders = {str(entry.id): entry.order for entry in batch.entries}
        stored = self.config.get_subject_orders(self.section_id)
        stored.update(orders)
        self.config.set_subject_orders(self.section_id, stored)
        logger.debug(f"Stored order of {len(orders)} subjects for section {self.section_id}")


def gateway_from_config(config: Config, section_id: str):
    """Use the HTTP API when ``api.base_url`` is set, the config file otherwise."""
    client = ApiClient.from_config(config)
    if client is None:
        return ConfigReorderGateway(config, section_id)
    return HttpReorderGateway(client, section_id)
