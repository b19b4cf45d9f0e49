"""
Content extraction module - Bounded-concurrency text/OCR previews.

Files are processed in fixed-size windows. Reads and extraction requests of a
window run concurrently and the next window starts only after the whole
window has settled.
"""
import asyncio
import base64
import logging
from typing import Callable, List, Optional

from auto_organizer.models import ScannedFile

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]


class ContentExtractionBatcher:
    """Fills ScannedFile.content_preview via the remote extractor."""

    def __init__(self, filesystem, api, max_bytes: int = 50000, concurrency: int = 5):
        """
        Initialize batcher.

        Args:
            filesystem: Provides async read_bytes(path, max_bytes)
            api: Provides async extract_content(token, content_base64, extension, filename)
            max_bytes: Leading bytes read per file
            concurrency: Window size
        """
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self.filesystem = filesystem
        self.api = api
        self.max_bytes = max_bytes
        self.concurrency = concurrency

    async def extract_file(self, token: str, scanned_file: ScannedFile) -> str:
        """
        Extract a preview for a single file.

        Returns:
            Preview text, "" when the file is empty or the extractor had nothing
        """
        content = await self.filesystem.read_bytes(scanned_file.path, self.max_bytes)
        if not content:
            return ""
        encoded = base64.b64encode(content).decode("ascii")
        return await self.api.extract_content(
            token, encoded, scanned_file.extension, scanned_file.filename
        )

    async def _safe_extract(self, token: str, scanned_file: ScannedFile) -> ScannedFile:
        try:
            preview = await self.extract_file(token, scanned_file)
        except Exception as e:
            logger.warning(f"Failed to extract content from {scanned_file.filename}: {e}")
            preview = ""
        return scanned_file.model_copy(update={"content_preview": preview})

    async def extract_all(
        self,
        token: str,
        files: List[ScannedFile],
        on_progress: Optional[ProgressCallback] = None,
    ) -> List[ScannedFile]:
        """
        Extract previews for all files.

        Args:
            token: Bearer token for the extractor
            files: Files to process
            on_progress: Called with (processed_count, total_count) after each window

        Returns:
            New list with the same length and order as files
        """
        total = len(files)
        results: List[ScannedFile] = []

        for start in range(0, total, self.concurrency):
            window = files[start:start + self.concurrency]
            # gather keeps the window's order regardless of completion order
            results.extend(await asyncio.gather(
                *(self._safe_extract(token, f) for f in window)
            ))
            processed = min(start + self.concurrency, total)
            logger.debug(f"Extracted content for {processed}/{total} files")
            if on_progress is not None:
                on_progress(processed, total)

        extracted = sum(1 for f in results if f.content_preview)
        logger.info(f"Extracted previews for {extracted}/{total} files")
        return results
