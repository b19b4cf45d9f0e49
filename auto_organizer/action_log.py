"""
Action log module - Best-effort history recording.

Every history call runs as a detached task. Failures are counted and logged,
never raised to the caller.
"""
import asyncio
import logging
from pathlib import PurePath
from typing import List, Set

from auto_organizer.executor import index_by_filename
from auto_organizer.models import ActionLogEntry, OrganizeResult, ScannedFile, clamp_confidence

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.9


class ActionLogger:
    """Fire-and-forget recorder of completed moves."""

    def __init__(self, api):
        """
        Initialize logger.

        Args:
            api: Provides async log_action(token, entry)
        """
        self.api = api
        self.logged_count = 0
        self.failed_count = 0
        self._pending: Set[asyncio.Task] = set()

    @staticmethod
    def build_entries(
        base_folder: str,
        result: OrganizeResult,
        scanned_files: List[ScannedFile],
    ) -> List[ActionLogEntry]:
        """One entry per suggested filename that matches a scanned file."""
        index = index_by_filename(scanned_files)
        entries = []
        for folder in result.folders:
            confidence = folder.confidence if folder.confidence is not None else DEFAULT_CONFIDENCE
            for filename in folder.files:
                scanned_file = index.get(filename)
                if scanned_file is None:
                    continue
                entries.append(ActionLogEntry(
                    filename=scanned_file.filename,
                    source_path=scanned_file.path,
                    dest_path=str(PurePath(base_folder) / folder.folder_path / filename),
                    confidence=clamp_confidence(confidence),
                ))
        return entries

    async def _record(self, token: str, entry: ActionLogEntry) -> None:
        try:
            await self.api.log_action(token, entry)
            self.logged_count += 1
        except Exception as e:
            self.failed_count += 1
            logger.warning(f"Failed to log action for {entry.filename}: {e}")

    def record_moves(
        self,
        token: str,
        base_folder: str,
        result: OrganizeResult,
        scanned_files: List[ScannedFile],
    ) -> int:
        """
        Schedule one history call per moved file without waiting for them.

        Must be called from a running event loop.

        Returns:
            Number of calls scheduled
        """
        entries = self.build_entries(base_folder, result, scanned_files)
        for entry in entries:
            task = asyncio.ensure_future(self._record(token, entry))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
        logger.debug(f"Scheduled {len(entries)} history records")
        return len(entries)

    @property
    def pending(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for all scheduled history calls to settle."""
        if self._pending:
            await asyncio.gather(*list(self._pending))
