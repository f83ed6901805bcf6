"""
Prompt Template Store - the agent's saved summary prompt

A single template string lives under one store key. When nothing is saved
the pipeline falls back to the configured template and then the default.
"""
from typing import Optional

from ticket_intel.repositories.kv_store import KeyValueStore
from ticket_intel.utils.logger import get_logger

logger = get_logger(__name__)

TEMPLATE_KEY = "promptTemplate"


class PromptTemplateStore:
    """Persisted user prompt template"""

    def __init__(self, store: KeyValueStore):
        self.store = store

    async def get(self) -> Optional[str]:
        """Saved template, or None when the agent has not saved one"""
        template = await self.store.get(TEMPLATE_KEY)
        if not isinstance(template, str) or not template.strip():
            return None
        return template

    async def save(self, template: str) -> str:
        """
        Replace the saved template

        Raises:
            ValueError: template is blank
        """
        if not template or not template.strip():
            raise ValueError("Prompt template cannot be empty")

        await self.store.set(TEMPLATE_KEY, template)
        logger.info(f"Saved prompt template ({len(template)} chars)")
        return template

    async def reset(self) -> None:
        """Forget the saved template so the default applies again"""
        await self.store.remove(TEMPLATE_KEY)
        logger.info("Reset prompt template to default")
