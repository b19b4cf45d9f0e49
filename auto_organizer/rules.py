"""
Rule synthesis module - Derive sorting rules from an organize result.

Returned rules start selected so the user can deselect the ones to drop.
Confirmed rules are not persisted here.
"""
import logging
from typing import List

from auto_organizer.models import OrganizeResult, SuggestedRule

logger = logging.getLogger(__name__)


class RuleSynthesizer:
    """Requests rule suggestions for a completed organize result."""

    def __init__(self, api):
        self.api = api

    async def suggest(self, token: str, result: OrganizeResult, source_folder: str) -> List[SuggestedRule]:
        """
        Ask the service for rules matching the grouping.

        Returns:
            Suggested rules, all selected; empty when no pattern was found
        """
        payload = {
            "folders": [
                folder.model_dump(mode='json', include={
                    "folder_path", "folder_name", "files", "reason", "confidence", "file_count",
                })
                for folder in result.folders
            ],
            "source_folder": source_folder,
        }
        response = await self.api.generate_rules(token, payload)
        rules = [rule.model_copy(update={"selected": True}) for rule in response.rules]
        logger.info(f"Service suggested {len(rules)} rules")
        return rules
