"""
CLI interface for the auto organizer.

Provides command-line access to the organize workflow, login and history.
"""
import argparse
import asyncio
import getpass
import json
import logging
import sys
from pathlib import Path

from pydantic import ValidationError as ModelValidationError

from auto_organizer.api_client import OrganizeApiClient
from auto_organizer.config import AppConfig, ConfigStore
from auto_organizer.errors import OrganizeError
from auto_organizer.filesystem import LocalFileSystem
from auto_organizer.models import OrganizeOptions, OrganizeSession, OrganizeStep
from auto_organizer.orchestrator import SESSION_EXPIRED, OrganizeOrchestrator, configure_logging

logger = logging.getLogger(__name__)

PREVIEW_FILES_PER_FOLDER = 4

# organize flag -> OrganizeOptions field
OPTION_FLAGS = {
    "content": "use_content_extraction",
    "existing": "use_existing_folders",
    "ai_naming": "use_gemini_naming",
    "ai_full": "use_gemini_full",
    "prompt": "custom_prompt",
}


def print_status(step: OrganizeStep, message: str) -> None:
    print(f"[{step.value}] {message}")


def print_preview(session: OrganizeSession) -> None:
    """Print the proposed grouping."""
    result = session.result
    print("\n" + "=" * 60)
    print(f"PREVIEW: {result.total_files} files -> {result.total_folders} folders")
    print("=" * 60)
    for folder in result.folders:
        confidence = f"{folder.confidence:.0%}" if folder.confidence is not None else "n/a"
        print(f"\n{folder.folder_path}/  ({len(folder.files)} files, confidence {confidence})")
        if folder.reason:
            print(f"  {folder.reason}")
        for filename in folder.files[:PREVIEW_FILES_PER_FOLDER]:
            print(f"  - {filename}")
        if len(folder.files) > PREVIEW_FILES_PER_FOLDER:
            print(f"  +{len(folder.files) - PREVIEW_FILES_PER_FOLDER} more")

    unassigned = session.unassigned_files
    if unassigned:
        print(f"\nLeft in place ({len(unassigned)}):")
        for filename in unassigned:
            print(f"  - {filename}")


def confirm(prompt: str) -> bool:
    answer = input(f"{prompt} [y/N] ").strip().lower()
    return answer in ("y", "yes")


def build_options(config: AppConfig, args: argparse.Namespace) -> OrganizeOptions:
    """Stored default options, overridden only by the flags actually given."""
    overrides = {}
    for flag, field in OPTION_FLAGS.items():
        value = getattr(args, flag, None)
        if value is not None:
            overrides[field] = value
    return config.default_options.model_copy(update=overrides)


async def refresh_access_token(store: ConfigStore, api: OrganizeApiClient) -> bool:
    """
    Renew the stored access token with the stored refresh token.

    Returns:
        True if a new access token was stored
    """
    refresh = store.config.refresh_token
    if not refresh:
        return False
    try:
        tokens = await api.refresh_token(refresh)
    except OrganizeError as e:
        logger.warning(f"Token refresh failed: {e}")
        return False
    store.store_tokens(tokens.access_token, tokens.refresh_token or refresh)
    logger.info("Access token refreshed")
    return True


async def organize_command(store: ConfigStore, args: argparse.Namespace) -> int:
    """Scan, analyze and optionally apply a grouping for one folder."""
    config = store.config
    options = build_options(config, args)
    folder = str(Path(args.folder).absolute())

    async with OrganizeApiClient(config.api_url, timeout=config.request_timeout) as api:
        orchestrator = OrganizeOrchestrator(
            api, LocalFileSystem(), store, config, on_status=print_status
        )

        step = await orchestrator.start(folder, options)
        if (step == OrganizeStep.IDLE and orchestrator.status == SESSION_EXPIRED
                and await refresh_access_token(store, api)):
            step = await orchestrator.start(folder, options)
        if step != OrganizeStep.PREVIEW:
            return 1

        print_preview(orchestrator.session)

        if not args.apply:
            print("\nPREVIEW ONLY: No files were moved")
            print("Run with --apply to move files")
            return 0

        if not args.yes and not confirm("\nMove files now?"):
            orchestrator.cancel()
            print("Cancelled")
            return 0

        step = await orchestrator.execute()
        if step != OrganizeStep.DONE:
            return 1

        await orchestrator.action_logger.drain()

        execution = orchestrator.session.execution
        print("\n" + "=" * 60)
        print("RESULTS")
        print("=" * 60)
        print(f"Files moved: {execution.moved_count}")
        print(f"Files skipped: {execution.skipped_count}")
        print(f"History records: {orchestrator.action_logger.logged_count}")
        for error in execution.errors:
            print(f"Error: {error}")

        if args.rules:
            rules = await orchestrator.generate_rules()
            if rules:
                print("\nSuggested rules:")
                for rule in rules:
                    print(f"  - {rule.description or rule.pattern} -> {rule.target_folder} "
                          f"({rule.file_count} files)")

        orchestrator.cancel()
        return 0


async def login_command(store: ConfigStore, args: argparse.Namespace) -> int:
    config = store.config
    password = args.password or getpass.getpass("Password: ")
    async with OrganizeApiClient(config.api_url, timeout=config.request_timeout) as api:
        tokens = await api.login(args.email, password)
    store.store_tokens(tokens.access_token, tokens.refresh_token)
    print(f"Logged in as {args.email}")
    return 0


async def history_command(store: ConfigStore, args: argparse.Namespace) -> int:
    config = store.config
    token = store.get_access_token()
    if not token:
        print("Error: Not logged in")
        return 1
    async with OrganizeApiClient(config.api_url, timeout=config.request_timeout) as api:
        actions = await api.recent_actions(token, per_page=args.limit)
    if not actions:
        print("No recent actions")
    for action in actions:
        print(f"{action.created_at}  {action.filename} -> {action.dest_path}")
    return 0


def config_command(store: ConfigStore, args: argparse.Namespace) -> int:
    if args.set:
        key, sep, raw = args.set.partition("=")
        if not sep or key not in AppConfig.model_fields:
            print(f"Error: Unknown setting '{key}'")
            return 1
        try:
            value = json.loads(raw)
        except ValueError:
            value = raw
        try:
            store.update(**{key: value})
        except ModelValidationError as e:
            print(f"Error: Invalid value for {key}: {e}")
            return 1
        print(f"{key} updated")
        return 0

    data = store.config.model_dump(mode='json')
    for secret in ("access_token", "refresh_token"):
        if data.get(secret):
            data[secret] = "***"
    print(json.dumps(data, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Auto Organizer - Group a folder's files into sub-folders with AI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Preview a grouping (default)
  auto-organizer organize ~/Downloads

  # Move files, using text/OCR previews for better grouping
  auto-organizer organize ~/Downloads --content --apply

  # Log in to the organize service
  auto-organizer login --email me@example.com
        """
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to configuration JSON file"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)"
    )
    subparsers = parser.add_subparsers(dest="command")

    organize = subparsers.add_parser("organize", help="Group a folder's files into sub-folders")
    organize.add_argument("folder", type=str, help="Folder to organize")
    organize.add_argument("--apply", action="store_true", help="Move files (default is preview only)")
    organize.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation")
    # Unset switches fall back to default_options from the config file
    organize.add_argument(
        "--content",
        action=argparse.BooleanOptionalAction,
        help="Send text/OCR previews of files"
    )
    organize.add_argument(
        "--existing",
        action=argparse.BooleanOptionalAction,
        help="Send existing sub-folders as hints"
    )
    organize.add_argument(
        "--ai-naming",
        action=argparse.BooleanOptionalAction,
        help="Let the service name folders with AI"
    )
    organize.add_argument(
        "--ai-full",
        action=argparse.BooleanOptionalAction,
        help="Let the service group files with AI"
    )
    organize.add_argument("--prompt", type=str, help="Extra instructions for the service")
    organize.add_argument("--rules", action="store_true", help="Suggest sorting rules afterwards")

    login = subparsers.add_parser("login", help="Log in to the organize service")
    login.add_argument("--email", required=True, help="Account email")
    login.add_argument("--password", help="Account password (prompted if omitted)")

    subparsers.add_parser("logout", help="Forget stored tokens")

    history = subparsers.add_parser("history", help="Show recently organized files")
    history.add_argument("--limit", type=int, default=5, help="Number of entries (default: 5)")

    config = subparsers.add_parser("config", help="Show or change settings")
    config_action = config.add_mutually_exclusive_group()
    config_action.add_argument("--show", action="store_true", help="Print settings (default)")
    config_action.add_argument("--set", metavar="KEY=VALUE", help="Change one setting")

    return parser


def main(argv=None) -> None:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.log_level)
    store = ConfigStore(args.config)

    try:
        if args.command == "organize":
            code = asyncio.run(organize_command(store, args))
        elif args.command == "login":
            code = asyncio.run(login_command(store, args))
        elif args.command == "logout":
            store.clear_tokens()
            print("Logged out")
            code = 0
        elif args.command == "history":
            code = asyncio.run(history_command(store, args))
        elif args.command == "config":
            code = config_command(store, args)
        else:
            parser.print_help()
            code = 1
    except (OrganizeError, OSError, ValueError) as e:
        print(f"\nError: {e}")
        code = 1

    sys.exit(code)


if __name__ == "__main__":
    main()
