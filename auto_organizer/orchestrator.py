"""
Organize orchestrator - Drives one organize session through its steps.

Idle -> Scanning -> Analyzing -> Preview -> Executing -> Done

Every failure path ends in an explicit transition with a readable status.
Results of calls that complete after the session was cancelled are discarded.
"""
import itertools
import logging
from typing import Callable, List, Optional

from auto_organizer.action_log import ActionLogger
from auto_organizer.analysis import ClusterAnalysisClient
from auto_organizer.config import AppConfig
from auto_organizer.errors import (
    AuthError,
    ServiceError,
    StateError,
    TransportError,
    UnauthorizedError,
    ValidationError,
)
from auto_organizer.executor import MoveExecutor
from auto_organizer.extraction import ContentExtractionBatcher
from auto_organizer.models import (
    OrganizeOptions,
    OrganizeSession,
    OrganizeStep,
    ScannedFile,
    SuggestedRule,
)
from auto_organizer.rules import RuleSynthesizer

logger = logging.getLogger(__name__)

NO_FOLDER = "No folder selected"
FOLDER_EMPTY = "Folder is empty"
TOO_MANY_FILES = "Too many files ({count}). Maximum {limit}."
AUTH_REQUIRED = "Authentication required. Please log in again."
SESSION_EXPIRED = "Session expired. Please log in again."
NO_RULE_PATTERNS = "No patterns found for rules"

StatusCallback = Callable[[OrganizeStep, str], None]


class OrganizeOrchestrator:
    """State machine owning a single organize session."""

    def __init__(
        self,
        api,
        filesystem,
        tokens,
        config: Optional[AppConfig] = None,
        on_status: Optional[StatusCallback] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            api: OrganizeApiClient (or compatible) for remote calls
            filesystem: LocalFileSystem (or compatible) for scans and moves
            tokens: Provides get_access_token() -> Optional[str]
            config: Limits and service bounds
            on_status: Called with (step, message) on every status change
        """
        self.config = config or AppConfig()
        self.api = api
        self.filesystem = filesystem
        self.tokens = tokens
        self.on_status = on_status

        self.extractor = ContentExtractionBatcher(
            filesystem,
            api,
            max_bytes=self.config.extraction_max_bytes,
            concurrency=self.config.extraction_concurrency,
        )
        self.analysis = ClusterAnalysisClient(
            api,
            min_clusters=self.config.min_clusters,
            max_clusters=self.config.max_clusters,
        )
        self.executor = MoveExecutor(filesystem)
        self.action_logger = ActionLogger(api)
        self.rule_synthesizer = RuleSynthesizer(api)

        self._session_ids = itertools.count(1)
        self.session = self._new_session()

    # Session bookkeeping

    def _new_session(self, folder: str = "", options: Optional[OrganizeOptions] = None) -> OrganizeSession:
        return OrganizeSession(
            session_id=next(self._session_ids),
            selected_folder=folder,
            options=options or self.config.default_options.model_copy(),
        )

    def _is_current(self, session: OrganizeSession) -> bool:
        if session.session_id == self.session.session_id:
            return True
        logger.debug(f"Discarding late result for session {session.session_id}")
        return False

    def _set_status(self, session: OrganizeSession, message: str) -> None:
        session.status_message = message
        logger.info(f"[{session.step.value}] {message}")
        if self.on_status is not None:
            self.on_status(session.step, message)

    def _transition(self, session: OrganizeSession, step: OrganizeStep, message: str) -> None:
        logger.debug(f"Session {session.session_id}: {session.step.value} -> {step.value}")
        session.step = step
        self._set_status(session, message)

    def _abort(self, session: OrganizeSession, message: str) -> None:
        """Return to Idle, dropping everything gathered so far."""
        session.scanned_files = []
        session.existing_folders = []
        session.result = None
        session.execution = None
        session.suggested_rules = []
        self._transition(session, OrganizeStep.IDLE, message)

    @property
    def step(self) -> OrganizeStep:
        return self.session.step

    @property
    def status(self) -> str:
        return self.session.status_message

    # Workflow

    async def start(self, folder: str, options: Optional[OrganizeOptions] = None) -> OrganizeStep:
        """
        Scan a folder and ask the service for a grouping.

        Args:
            folder: Folder to organize
            options: Switches for this run (defaults from config)

        Returns:
            PREVIEW on success, IDLE otherwise (see status for the reason)

        Raises:
            StateError: If a session is already in progress
        """
        if self.session.step != OrganizeStep.IDLE:
            raise StateError(f"Cannot start while {self.session.step.value}; cancel the session first")

        session = self._new_session(folder, options)
        self.session = session

        try:
            token = self._preflight(folder)
        except (ValidationError, AuthError) as e:
            self._abort(session, str(e))
            return session.step

        try:
            if await self._scan(session):
                await self._analyze(session, token)
        except Exception:
            if self._is_current(session):
                self._abort(session, "Error: unexpected failure, see log")
            raise
        return session.step if self._is_current(session) else self.session.step

    def _preflight(self, folder: str) -> str:
        """
        Check that a run can start.

        Returns:
            The access token to use

        Raises:
            ValidationError: If no folder was given
            AuthError: If there is no access token
        """
        if not folder:
            raise ValidationError(NO_FOLDER)
        token = self.tokens.get_access_token()
        if not token:
            raise AuthError(AUTH_REQUIRED)
        return token

    def validate_scan(self, files: List[ScannedFile]) -> None:
        """
        Check a scan result against the file limits.

        Raises:
            ValidationError: If the folder is empty or holds too many files
        """
        if not files:
            raise ValidationError(FOLDER_EMPTY)
        if len(files) > self.config.max_files:
            raise ValidationError(TOO_MANY_FILES.format(count=len(files), limit=self.config.max_files))

    async def _scan(self, session: OrganizeSession) -> bool:
        logger.info("=" * 60)
        logger.info("SCANNING %s", session.selected_folder)
        logger.info("=" * 60)
        self._transition(session, OrganizeStep.SCANNING, "Scanning folder...")

        try:
            files = await self.filesystem.scan_folder(session.selected_folder)
        except OSError as e:
            if self._is_current(session):
                self._abort(session, f"Error: {e}")
            return False
        if not self._is_current(session):
            return False

        try:
            self.validate_scan(files)
        except ValidationError as e:
            self._abort(session, str(e))
            return False

        session.scanned_files = files
        return True

    async def _analyze(self, session: OrganizeSession, token: str) -> None:
        options = session.options
        count = len(session.scanned_files)

        logger.info("=" * 60)
        logger.info("ANALYZING %s FILES", count)
        logger.info("=" * 60)
        self._transition(session, OrganizeStep.ANALYZING, f"Found {count} files. Analyzing...")

        if options.use_existing_folders:
            try:
                existing = await self.filesystem.scan_existing_folders(session.selected_folder)
            except OSError as e:
                logger.warning(f"Failed to scan existing folders: {e}")
                existing = []
            if not self._is_current(session):
                return
            session.existing_folders = existing
            self._set_status(session, f"Found {count} files, {len(existing)} folders. Analyzing...")

        files = session.scanned_files
        if options.use_content_extraction:
            self._set_status(session, f"Extracting content (0/{count})...")
            files = await self.extractor.extract_all(
                token,
                files,
                on_progress=lambda done, total: self._extraction_progress(session, done, total),
            )
            if not self._is_current(session):
                return
            session.scanned_files = files
            self._set_status(session, f"Analyzing {count} files...")

        try:
            result = await self.analysis.analyze(token, files, options, session.existing_folders)
        except UnauthorizedError:
            if self._is_current(session):
                self._abort(session, SESSION_EXPIRED)
            return
        except (ServiceError, TransportError) as e:
            if self._is_current(session):
                self._abort(session, f"Error: {e}")
            return
        if not self._is_current(session):
            return

        session.result = result
        unassigned = len(session.unassigned_files)
        message = f"Ready: {result.total_folders} folders"
        if unassigned:
            message += f" ({unassigned} files left in place)"
        self._transition(session, OrganizeStep.PREVIEW, message)

    def _extraction_progress(self, session: OrganizeSession, done: int, total: int) -> None:
        if self._is_current(session):
            self._set_status(session, f"Extracting content ({done}/{total})...")

    async def execute(self) -> OrganizeStep:
        """
        Apply the previewed grouping.

        Returns:
            DONE when the moves ran (even partially), PREVIEW if execution failed

        Raises:
            StateError: If there is no previewed grouping
        """
        session = self.session
        if session.step != OrganizeStep.PREVIEW or session.result is None:
            raise StateError(f"Nothing to execute while {session.step.value}")

        logger.info("=" * 60)
        logger.info("EXECUTING MOVES")
        logger.info("=" * 60)
        self._transition(session, OrganizeStep.EXECUTING, "Moving files...")

        try:
            execution = await self.executor.execute(
                session.selected_folder, session.result, session.scanned_files
            )
        except Exception as e:
            logger.error(f"Move execution failed: {e}")
            if self._is_current(session):
                self._transition(session, OrganizeStep.PREVIEW, f"Error: {e}")
            return self.session.step
        if not self._is_current(session):
            return self.session.step

        session.execution = execution
        if execution.success or execution.moved_count > 0:
            self._log_history(session)

        if execution.errors:
            message = f"Moved {execution.moved_count} files, {len(execution.errors)} errors"
        else:
            message = f"Moved {execution.moved_count} files"
        self._transition(session, OrganizeStep.DONE, message)
        return session.step

    def _log_history(self, session: OrganizeSession) -> None:
        token = self.tokens.get_access_token()
        if not token:
            logger.warning("No access token, skipping history logging")
            return
        self.action_logger.record_moves(
            token, session.selected_folder, session.result, session.scanned_files
        )

    async def generate_rules(self) -> List[SuggestedRule]:
        """
        Ask the service for sorting rules matching the current grouping.

        Returns:
            Suggested rules (all selected), empty if none or on failure

        Raises:
            StateError: If there is no grouping yet
        """
        session = self.session
        if session.result is None or session.step not in (OrganizeStep.PREVIEW, OrganizeStep.DONE):
            raise StateError(f"No grouping to derive rules from while {session.step.value}")

        token = self.tokens.get_access_token()
        if not token:
            self._set_status(session, AUTH_REQUIRED)
            return []

        try:
            rules = await self.rule_synthesizer.suggest(token, session.result, session.selected_folder)
        except UnauthorizedError:
            if self._is_current(session):
                self._set_status(session, SESSION_EXPIRED)
            return []
        except (ServiceError, TransportError) as e:
            logger.error(f"Failed to generate rules: {e}")
            if self._is_current(session):
                self._set_status(session, f"Error: {e}")
            return []
        if not self._is_current(session):
            return []

        session.suggested_rules = rules
        if rules:
            self._set_status(session, f"{len(rules)} rules suggested")
        else:
            self._set_status(session, NO_RULE_PATTERNS)
        return rules

    def toggle_rule(self, index: int) -> SuggestedRule:
        """Flip the selection of one suggested rule."""
        rules = self.session.suggested_rules
        if not 0 <= index < len(rules):
            raise IndexError(f"No suggested rule at position {index}")
        rules[index].selected = not rules[index].selected
        return rules[index]

    def confirm_rules(self) -> List[SuggestedRule]:
        """
        Return the selected rules.

        Rules are not stored anywhere; the caller decides what to do with them.
        """
        selected = [rule for rule in self.session.suggested_rules if rule.selected]
        self._set_status(self.session, f"{len(selected)} rules selected")
        return selected

    def cancel(self) -> None:
        """
        Discard the session and return to Idle.

        Also used to close a finished session. Pending calls are not aborted;
        their results are ignored when they arrive.

        Raises:
            StateError: While moves are being executed
        """
        if self.session.step == OrganizeStep.EXECUTING:
            raise StateError("Cannot cancel while files are being moved")
        logger.debug(f"Session {self.session.session_id} discarded")
        self.session = self._new_session()


def configure_logging(level: str = "INFO") -> None:
    """
    Configure logging for the organizer.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
    """
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
