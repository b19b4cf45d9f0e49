"""
Shared fakes for the organize workflow tests.

The fakes record every call so tests can assert which collaborators were
reached, and can be told to fail or to block on demand.
"""
import asyncio
from pathlib import PurePosixPath
from typing import Dict, List, Optional

import pytest

from auto_organizer.errors import ServiceError
from auto_organizer.models import (
    ExistingFolder,
    FolderSuggestion,
    MoveExecutionResult,
    OrganizeResult,
    RulesResponse,
    ScannedFile,
    SuggestedRule,
)

BASE_FOLDER = "/data/inbox"


def make_file(filename: str, size: int = 100) -> ScannedFile:
    return ScannedFile(
        filename=filename,
        extension=PurePosixPath(filename).suffix.lower(),
        size_bytes=size,
        path=f"{BASE_FOLDER}/{filename}",
    )


def make_result(groups: Dict[str, List[str]], confidence: Optional[float] = 0.8) -> OrganizeResult:
    folders = [
        FolderSuggestion(
            folder_path=name,
            folder_name=name,
            files=files,
            reason=f"{name} files",
            confidence=confidence,
            file_count=len(files),
        )
        for name, files in groups.items()
    ]
    return OrganizeResult(
        folders=folders,
        total_files=sum(len(f) for f in groups.values()),
        total_folders=len(folders),
        naming_method="ai",
    )


class FakeFileSystem:
    """In-memory stand-in for LocalFileSystem."""

    def __init__(self, files=None, existing=None, contents=None):
        self.files: List[ScannedFile] = list(files or [])
        self.existing: List[ExistingFolder] = list(existing or [])
        self.contents: Dict[str, bytes] = dict(contents or {})
        self.scan_error: Optional[Exception] = None
        self.existing_error: Optional[Exception] = None
        self.move_error: Optional[Exception] = None
        self.failing_moves: set = set()
        self.calls: List[tuple] = []
        self.submitted_moves = []

    async def scan_folder(self, path):
        self.calls.append(("scan_folder", path))
        if self.scan_error is not None:
            raise self.scan_error
        return list(self.files)

    async def scan_existing_folders(self, path):
        self.calls.append(("scan_existing_folders", path))
        if self.existing_error is not None:
            raise self.existing_error
        return list(self.existing)

    async def read_bytes(self, path, max_bytes):
        self.calls.append(("read_bytes", path, max_bytes))
        if path not in self.contents:
            raise FileNotFoundError(path)
        return self.contents[path][:max_bytes]

    async def execute_moves(self, base_folder, moves, create_folders=True):
        self.calls.append(("execute_moves", base_folder, create_folders))
        if self.move_error is not None:
            raise self.move_error
        self.submitted_moves = list(moves)
        result = MoveExecutionResult()
        for move in moves:
            if move.filename in self.failing_moves:
                result.errors.append(f"Failed to move {move.filename}: denied")
                result.skipped_count += 1
            else:
                result.moved_count += 1
        result.success = not result.errors
        return result


class FakeApi:
    """In-memory stand-in for OrganizeApiClient."""

    def __init__(self, result: Optional[OrganizeResult] = None):
        self.result = result or OrganizeResult()
        self.analyze_error: Optional[Exception] = None
        self.analyze_gate: Optional[asyncio.Event] = None
        self.analyze_started = asyncio.Event()
        self.previews: Dict[str, str] = {}
        self.extract_failures: set = set()
        self.rules: List[SuggestedRule] = []
        self.rules_error: Optional[Exception] = None
        self.log_failures: set = set()
        self.logged = []
        self.payloads: List[dict] = []
        self.calls: List[str] = []

    async def analyze(self, token, payload):
        self.calls.append("analyze")
        self.payloads.append(payload)
        self.analyze_started.set()
        if self.analyze_gate is not None:
            await self.analyze_gate.wait()
        if self.analyze_error is not None:
            raise self.analyze_error
        return self.result

    async def extract_content(self, token, content_base64, extension, filename):
        self.calls.append("extract_content")
        # Yield so that windows genuinely interleave
        await asyncio.sleep(0)
        if filename in self.extract_failures:
            raise ServiceError(500)
        return self.previews.get(filename, "")

    async def generate_rules(self, token, payload):
        self.calls.append("generate_rules")
        self.payloads.append(payload)
        if self.rules_error is not None:
            raise self.rules_error
        return RulesResponse(
            rules=[rule.model_copy() for rule in self.rules],
            total_rules=len(self.rules),
        )

    async def log_action(self, token, entry):
        self.calls.append("log_action")
        if entry.filename in self.log_failures:
            raise ServiceError(500)
        self.logged.append(entry)


class FakeTokens:
    def __init__(self, token: Optional[str] = "token-123"):
        self.token = token

    def get_access_token(self):
        return self.token


@pytest.fixture
def scanned_files():
    return [make_file("a.pdf"), make_file("b.jpg"), make_file("c.txt")]


@pytest.fixture
def filesystem(scanned_files):
    return FakeFileSystem(files=scanned_files)


@pytest.fixture
def api():
    return FakeApi(make_result({"Docs": ["a.pdf", "c.txt"], "Images": ["b.jpg"]}))


@pytest.fixture
def tokens():
    return FakeTokens()
