"""
Executor module - Turn a grouping into file moves.

Suggestion entries whose filename was never scanned are dropped before the
batch is submitted; they are not reported as errors.
"""
import logging
from typing import Dict, List

from auto_organizer.models import MoveExecutionResult, MoveOperation, OrganizeResult, ScannedFile

logger = logging.getLogger(__name__)


def index_by_filename(scanned_files: List[ScannedFile]) -> Dict[str, ScannedFile]:
    """Map filename to scanned file; the first occurrence wins."""
    index: Dict[str, ScannedFile] = {}
    for scanned_file in scanned_files:
        index.setdefault(scanned_file.filename, scanned_file)
    return index


class MoveExecutor:
    """Plans and submits the moves of an organize result."""

    def __init__(self, filesystem):
        """
        Initialize executor.

        Args:
            filesystem: Provides async execute_moves(base_folder, moves, create_folders)
        """
        self.filesystem = filesystem

    def plan_moves(self, result: OrganizeResult, scanned_files: List[ScannedFile]) -> List[MoveOperation]:
        """
        Resolve every suggested filename to a move operation.

        Args:
            result: Grouping to apply
            scanned_files: Files found by the scan

        Returns:
            Moves for filenames that resolve to a scanned file
        """
        index = index_by_filename(scanned_files)
        moves: List[MoveOperation] = []
        dropped = 0

        for folder in result.folders:
            for filename in folder.files:
                scanned_file = index.get(filename)
                if scanned_file is None:
                    dropped += 1
                    logger.debug(f"No scanned file named {filename}, dropping it from {folder.folder_path}")
                    continue
                moves.append(MoveOperation(
                    source_path=scanned_file.path,
                    dest_folder=folder.folder_path,
                    filename=filename,
                ))

        logger.info(f"Planned {len(moves)} moves ({dropped} unresolved entries dropped)")
        return moves

    async def execute(
        self,
        base_folder: str,
        result: OrganizeResult,
        scanned_files: List[ScannedFile],
    ) -> MoveExecutionResult:
        """
        Move files into their suggested folders, creating folders as needed.

        Returns:
            Aggregate result; per-file failures are listed in errors
        """
        moves = self.plan_moves(result, scanned_files)
        if not moves:
            logger.warning("Nothing to move")
            return MoveExecutionResult()
        return await self.filesystem.execute_moves(base_folder, moves, create_folders=True)
