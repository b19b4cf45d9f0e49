"""
Filesystem module - Local scan, read and move primitives.

Scanning is read-only. Moves never overwrite an existing destination file and
continue past individual failures. Blocking disk work runs in worker threads
so the asyncio event loop stays responsive.
"""
from __future__ import annotations

import asyncio
import logging
import os
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Tuple

from auto_organizer.models import ExistingFolder, MoveExecutionResult, MoveOperation, ScannedFile

logger = logging.getLogger(__name__)

SAMPLE_FILES_PER_FOLDER = 5


def _is_hidden(name: str) -> bool:
    return name.startswith(".")


def _check_directory(directory: Path) -> None:
    if not directory.exists():
        raise FileNotFoundError(f"Folder does not exist: {directory}")
    if not directory.is_dir():
        raise NotADirectoryError(f"Path is not a directory: {directory}")


def _list_entries(directory: Path) -> Tuple[List[os.DirEntry], List[os.DirEntry]]:
    """
    Split visible entries of a directory into (files, directories), sorted by name.

    Symlinks are classified by their target, so a link to a folder is a folder.
    """
    files = []
    directories = []
    with os.scandir(directory) as iterator:
        for entry in iterator:
            if _is_hidden(entry.name):
                continue
            try:
                if entry.is_dir():
                    directories.append(entry)
                else:
                    files.append(entry)
            except OSError as exc:
                logger.warning("Failed to access %s: %s", entry.path, exc)
    files.sort(key=lambda e: e.name)
    directories.sort(key=lambda e: e.name)
    return files, directories


def scan_folder_sync(directory: Path) -> List[ScannedFile]:
    """
    List the files directly inside a folder.

    Args:
        directory: Folder to scan

    Returns:
        List of ScannedFile sorted by filename

    Raises:
        FileNotFoundError: If the folder doesn't exist
        NotADirectoryError: If the path is not a folder
    """
    directory = Path(directory)
    _check_directory(directory)

    logger.info("Scanning folder: %s", directory)
    files, _ = _list_entries(directory)

    scanned: List[ScannedFile] = []
    for entry in files:
        try:
            stat = entry.stat(follow_symlinks=False)
        except OSError as exc:
            logger.warning("Failed to stat file %s: %s", entry.path, exc)
            continue

        suffix = Path(entry.name).suffix
        scanned.append(ScannedFile(
            filename=entry.name,
            extension=suffix.lower(),
            size_bytes=stat.st_size,
            path=str(Path(entry.path).absolute()),
            modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc).isoformat(),
        ))

    logger.info("Scanned %s files from %s", len(scanned), directory)
    return scanned


def scan_existing_folders_sync(directory: Path) -> List[ExistingFolder]:
    """
    Describe the sub-folders that already exist inside a folder.

    Args:
        directory: Folder to inspect

    Returns:
        List of ExistingFolder sorted by folder name
    """
    directory = Path(directory)
    _check_directory(directory)

    _, directories = _list_entries(directory)
    folders: List[ExistingFolder] = []
    for entry in directories:
        try:
            files, _ = _list_entries(Path(entry.path))
        except OSError as exc:
            logger.warning("Failed to list folder %s: %s", entry.path, exc)
            continue
        folders.append(ExistingFolder(
            folder_name=entry.name,
            folder_path=entry.name,
            sample_files=[f.name for f in files[:SAMPLE_FILES_PER_FOLDER]],
            file_count=len(files),
        ))

    logger.debug("Found %s existing folders in %s", len(folders), directory)
    return folders


def read_bytes_sync(path: Path, max_bytes: int) -> bytes:
    """Read at most max_bytes leading bytes of a file."""
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"File does not exist: {path}")
    with path.open("rb") as handle:
        return handle.read(max_bytes)


def _move_file(source: Path, target: Path) -> None:
    """Rename, falling back to copy + delete across filesystems."""
    try:
        os.rename(source, target)
    except OSError as rename_error:
        try:
            shutil.copy2(str(source), str(target))
        except OSError as copy_error:
            raise OSError(f"{rename_error} / {copy_error}") from copy_error
        try:
            source.unlink()
        except OSError as exc:
            logger.warning("Copied %s but could not remove the original: %s", source, exc)


def _contained_target(base: Path, move: MoveOperation) -> Optional[Path]:
    """Resolved destination of a move, or None if it would leave base."""
    target = (base / move.dest_folder / move.filename).resolve()
    if target == base or not target.is_relative_to(base):
        return None
    return target


def execute_moves_sync(
    base_folder: Path,
    moves: List[MoveOperation],
    create_folders: bool = True,
) -> MoveExecutionResult:
    """
    Move files into sub-folders of base_folder.

    Destinations are resolved first; a destination folder or filename that
    points outside base_folder (absolute paths, "..") is refused.

    Args:
        base_folder: Folder the destinations are relative to
        moves: Operations to execute, in order
        create_folders: Create missing destination folders

    Returns:
        MoveExecutionResult; individual failures are recorded, never raised
    """
    base_folder = Path(base_folder)
    base = base_folder.resolve()
    result = MoveExecutionResult()

    for move in moves:
        source = Path(move.source_path)
        target = _contained_target(base, move)
        if target is None:
            logger.error("Refusing to move %s to %s: outside %s", move.filename, move.dest_folder, base_folder)
            result.errors.append(f"Refusing to move {move.filename} outside {base_folder}")
            result.skipped_count += 1
            continue
        dest_folder = target.parent

        if create_folders and not dest_folder.exists():
            try:
                dest_folder.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                result.errors.append(f"Failed to create folder {dest_folder}: {exc}")
                result.skipped_count += 1
                continue

        if target.exists():
            logger.info("SKIP (exists): %s", target)
            result.skipped_count += 1
            continue

        try:
            logger.info("MOVING: %s -> %s", source, target)
            _move_file(source, target)
            result.moved_count += 1
        except OSError as exc:
            logger.error("Failed to move %s: %s", move.filename, exc)
            result.errors.append(f"Failed to move {move.filename}: {exc}")
            result.skipped_count += 1

    result.success = not result.errors
    logger.info(
        "Moved %s/%s files (%s skipped, %s errors)",
        result.moved_count, len(moves), result.skipped_count, len(result.errors),
    )
    return result


class LocalFileSystem:
    """Async facade over the local scan, read and move primitives."""

    async def scan_folder(self, path: str) -> List[ScannedFile]:
        return await asyncio.to_thread(scan_folder_sync, Path(path))

    async def scan_existing_folders(self, path: str) -> List[ExistingFolder]:
        return await asyncio.to_thread(scan_existing_folders_sync, Path(path))

    async def read_bytes(self, path: str, max_bytes: int) -> bytes:
        return await asyncio.to_thread(read_bytes_sync, Path(path), max_bytes)

    async def execute_moves(
        self,
        base_folder: str,
        moves: List[MoveOperation],
        create_folders: bool = True,
    ) -> MoveExecutionResult:
        return await asyncio.to_thread(execute_moves_sync, Path(base_folder), moves, create_folders)
