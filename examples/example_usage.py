"""
Example usage of the auto organizer.

This script demonstrates how to drive an organize session programmatically.
"""
import asyncio
import sys
from pathlib import Path

from auto_organizer.api_client import OrganizeApiClient
from auto_organizer.config import ConfigStore
from auto_organizer.filesystem import LocalFileSystem
from auto_organizer.models import OrganizeOptions, OrganizeStep
from auto_organizer.orchestrator import OrganizeOrchestrator, configure_logging


async def run(folder: Path) -> None:
    """Preview a grouping of folder and apply it."""
    store = ConfigStore()
    config = store.config

    options = OrganizeOptions(
        use_gemini_naming=True,  # AI-generated folder names
        use_existing_folders=True,  # Reuse folders that are already there
        use_content_extraction=False,  # Filenames and sizes only
        custom_prompt="Group by project",
    )

    async with OrganizeApiClient(config.api_url, timeout=config.request_timeout) as api:
        orchestrator = OrganizeOrchestrator(api, LocalFileSystem(), store, config)

        if await orchestrator.start(str(folder.absolute()), options) != OrganizeStep.PREVIEW:
            print(f"Could not analyze folder: {orchestrator.status}")
            return

        for suggestion in orchestrator.session.result.folders:
            print(f"{suggestion.folder_path}: {', '.join(suggestion.files)}")
        print(f"Left in place: {orchestrator.session.unassigned_files}")

        await orchestrator.execute()
        await orchestrator.action_logger.drain()
        print(orchestrator.status)

        rules = await orchestrator.generate_rules()
        for rule in rules:
            print(f"Rule: {rule.pattern} -> {rule.target_folder}")

        orchestrator.cancel()


def main():
    """Run example session."""
    configure_logging("INFO")
    folder = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("./test_files")
    asyncio.run(run(folder))


if __name__ == "__main__":
    main()
