"""
Cluster analysis module - Build and send the grouping request.

Only file metadata and previews are sent, never raw file bytes. Cluster-count
bounds are hints for the service and are not enforced locally.
"""
import logging
from typing import Any, Dict, List, Optional

from auto_organizer.models import ExistingFolder, OrganizeOptions, OrganizeResult, ScannedFile

logger = logging.getLogger(__name__)


class ClusterAnalysisClient:
    """Requests a folder grouping for a set of scanned files."""

    def __init__(self, api, min_clusters: int = 3, max_clusters: int = 15):
        """
        Initialize analysis client.

        Args:
            api: Provides async analyze(token, payload) -> OrganizeResult
            min_clusters: Soft lower bound passed to the service
            max_clusters: Soft upper bound passed to the service
        """
        self.api = api
        self.min_clusters = min_clusters
        self.max_clusters = max_clusters

    def build_payload(
        self,
        files: List[ScannedFile],
        options: OrganizeOptions,
        existing_folders: Optional[List[ExistingFolder]] = None,
    ) -> Dict[str, Any]:
        """
        Assemble the analyze request body.

        Args:
            files: Scanned files (with previews when extraction ran)
            options: Session options
            existing_folders: Sub-folder hints

        Returns:
            JSON-serializable request body
        """
        return {
            "files": [
                {
                    "filename": f.filename,
                    "extension": f.extension,
                    "size_bytes": f.size_bytes,
                    "content_preview": f.content_preview,
                    "path": f.path,
                }
                for f in files
            ],
            "existing_folders": [
                folder.model_dump(mode='json') for folder in (existing_folders or [])
            ],
            "use_existing_folders": options.use_existing_folders,
            "use_gemini_naming": options.use_gemini_naming,
            "use_gemini_full": options.use_gemini_full,
            "custom_prompt": options.custom_prompt,
            "min_clusters": self.min_clusters,
            "max_clusters": self.max_clusters,
        }

    async def analyze(
        self,
        token: str,
        files: List[ScannedFile],
        options: OrganizeOptions,
        existing_folders: Optional[List[ExistingFolder]] = None,
    ) -> OrganizeResult:
        """
        Ask the service to group files into folders.

        Raises:
            UnauthorizedError, ServiceError, TransportError: From the API client
        """
        payload = self.build_payload(files, options, existing_folders)
        logger.info(
            f"Requesting analysis of {len(files)} files "
            f"({len(payload['existing_folders'])} existing folders)"
        )
        result = await self.api.analyze(token, payload)
        logger.info(f"Service proposed {len(result.folders)} folders ({result.naming_method or 'default'} naming)")
        return result
