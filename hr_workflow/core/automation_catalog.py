"""Automation Catalog component for the actions offered to Automated nodes."""

import asyncio
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

import httpx

from ..models.core import AutomationDescriptor
from .logging import get_logger

logger = get_logger(__name__)

AutomationSource = Callable[[], Awaitable[Iterable[Any]]]

DEFAULT_AUTOMATIONS: List[AutomationDescriptor] = [
    AutomationDescriptor(id="send_email", label="Send Email", params=["to", "subject", "body"]),
    AutomationDescriptor(id="generate_doc", label="Generate Document", params=["template", "recipient"]),
    AutomationDescriptor(id="send_slack", label="Send Slack Message", params=["channel", "message"]),
    AutomationDescriptor(id="create_ticket", label="Create Ticket", params=["title", "priority"]),
]


def builtin_automation_source(latency: float = 0.0) -> AutomationSource:
    """Source serving the built-in automation list."""

    async def list_automations() -> List[AutomationDescriptor]:
        if latency:
            await asyncio.sleep(latency)
        return [descriptor.model_copy() for descriptor in DEFAULT_AUTOMATIONS]

    return list_automations


def remote_automation_source(
    url: str,
    timeout: float = 10.0,
    client: Optional[httpx.AsyncClient] = None
) -> AutomationSource:
    """Source fetching a JSON array of automation descriptors over HTTP."""

    async def list_automations() -> List[Any]:
        if client is not None:
            response = await client.get(url, timeout=timeout)
            response.raise_for_status()
            return response.json()
        async with httpx.AsyncClient(timeout=timeout) as own_client:
            response = await own_client.get(url)
            response.raise_for_status()
            return response.json()

    return list_automations


class AutomationCatalog:
    """Read-only lookup of automation descriptors.

    The catalog is populated once from an external source. A failing source
    leaves it empty; Automated nodes then simply offer no action choices.
    """

    def __init__(self, automations: Optional[Iterable[AutomationDescriptor]] = None):
        """Initialize the catalog.

        Args:
            automations: Optional descriptors to preload. A preloaded catalog
                counts as already read and ignores later ``load`` calls.
        """
        self._automations: Dict[str, AutomationDescriptor] = {}
        self._loaded = automations is not None
        for descriptor in automations or []:
            self._automations[descriptor.id] = descriptor

    @property
    def is_loaded(self) -> bool:
        return self._loaded

    async def load(self, source: AutomationSource) -> int:
        """Read the catalog from ``source`` once.

        Args:
            source: Awaitable callable returning descriptor records

        Returns:
            Number of descriptors available after loading
        """
        if self._loaded:
            logger.debug("Automation catalog already loaded, skipping source read")
            return len(self._automations)

        try:
            records = await source()
            descriptors = [AutomationDescriptor.model_validate(record) for record in records]
        except Exception as e:
            logger.warning(f"Failed to load automation catalog, continuing with no actions: {e}")
            descriptors = []

        self._automations = {descriptor.id: descriptor for descriptor in descriptors}
        self._loaded = True
        logger.info(f"Automation catalog loaded with {len(self._automations)} action(s)")
        return len(self._automations)

    def list_automations(self) -> List[AutomationDescriptor]:
        """List all descriptors in catalog order."""
        return list(self._automations.values())

    def get(self, action_id: Optional[str]) -> Optional[AutomationDescriptor]:
        if not action_id:
            return None
        return self._automations.get(action_id)

    def exists(self, action_id: Optional[str]) -> bool:
        return self.get(action_id) is not None

    def resolve_label(self, action_id: Optional[str]) -> Optional[str]:
        """Map an actionId to its display label, if known."""
        descriptor = self.get(action_id)
        return descriptor.label if descriptor else None

    def params_for(self, action_id: Optional[str]) -> List[str]:
        """Parameter names the configuration form should offer for an action."""
        descriptor = self.get(action_id)
        return list(descriptor.params) if descriptor else []
