"""Reference snapshot storage and verification.

References live in a directory tree below a snapshot root:

    {root}/{name}.{extension}

A snapshot which has no reference yet is recorded automatically and the
verification fails, so the new reference gets reviewed before it is trusted.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from . import config
from .image import Image
from .snapshotting import Attachment, Snapshotting

logger = logging.getLogger(__name__)


def sanitize_name(name: str) -> str:
    """Turn a snapshot name into a safe file name component.

    Example:
        >>> sanitize_name("login screen (dark)")
        'login-screen-dark'
    """
    sanitized = re.sub(r"\W+", "-", name).strip("-")
    if not sanitized:
        raise ValueError(f"Invalid snapshot name: {name!r}")
    return sanitized


class SnapshotStore:
    """Reads and writes reference snapshots below a root directory."""

    def __init__(self, root: str | Path | None = None):
        """
        Args:
            root: Snapshot root directory, config.SNAPSHOT_DIR by default
        """
        self.root = Path(root) if root is not None else config.SNAPSHOT_DIR

    def path_for(self, name: str, extension: str = config.SNAPSHOT_EXTENSION) -> Path:
        """Get the reference path of a snapshot."""
        return self.root / f"{sanitize_name(name)}.{extension.lstrip('.')}"

    def exists(self, name: str, extension: str = config.SNAPSHOT_EXTENSION) -> bool:
        return self.path_for(name, extension).exists()

    def load(self, name: str, extension: str = config.SNAPSHOT_EXTENSION) -> bytes:
        """Load the stored reference data.

        Raises:
            FileNotFoundError: If no reference was recorded yet
        """
        return self.path_for(name, extension).read_bytes()

    def save(
        self,
        name: str,
        data: bytes,
        extension: str = config.SNAPSHOT_EXTENSION,
    ) -> Path:
        """Store reference data, creating directories as needed."""
        path = self.path_for(name, extension)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.info("Recorded snapshot %s", path)
        return path


@dataclass(frozen=True)
class SnapshotResult:
    """Verdict of verifying a snapshot against its reference."""
    passed: bool
    message: str | None = None
    attachments: list[Attachment] = field(default_factory=list)
    recorded: bool = False
    reference_path: Path | None = None


class SnapshotMismatchError(AssertionError):
    """A snapshot did not match its reference (or had to be recorded)."""

    def __init__(self, result: SnapshotResult):
        super().__init__(result.message)
        self.result = result

    @property
    def attachments(self) -> list[Attachment]:
        return self.result.attachments


def write_artifacts(
    name: str,
    attachments: list[Attachment],
    directory: str | Path,
    snapshotting: Snapshotting,
) -> list[Path]:
    """Write failure attachments to {directory}/{name}/{attachment}.{ext}.

    Returns:
        Paths of the written files
    """
    target = Path(directory) / sanitize_name(name)
    target.mkdir(parents=True, exist_ok=True)
    paths = []
    for attachment in attachments:
        path = target / f"{attachment.name}.{snapshotting.path_extension}"
        path.write_bytes(snapshotting.diffing.to_data(attachment.image))
        paths.append(path)
    return paths


def verify_snapshot(
    image: Image,
    name: str,
    store: SnapshotStore | None = None,
    snapshotting: Snapshotting | None = None,
    record: bool | None = None,
) -> SnapshotResult:
    """Compare an image against its stored reference.

    Args:
        image: The newly taken snapshot
        name: Snapshot name, used as file name
        store: Reference storage, a SnapshotStore at config.SNAPSHOT_DIR by
            default
        snapshotting: The strategy, exact PNG image matching by default
        record: Overwrite the reference instead of comparing.
            config.RECORD by default.

    Returns:
        The verdict. Recording always fails.
    """
    store = store or SnapshotStore()
    snapshotting = snapshotting or Snapshotting.image()
    record = config.RECORD if record is None else record
    extension = snapshotting.path_extension
    diffing = snapshotting.diffing

    if record or not store.exists(name, extension):
        path = store.save(name, diffing.to_data(image), extension)
        if record:
            message = (
                "Record mode is on. Turn record mode off and re-run "
                f"\"{name}\" to test against the newly-recorded snapshot.\n\n"
                f"open \"{path}\"\n\nRecorded snapshot: …"
            )
        else:
            message = (
                "No reference was found on disk. Automatically recorded "
                f"snapshot: …\n\nopen \"{path}\"\n\n"
                f"Re-run \"{name}\" to test against the newly-recorded snapshot."
            )
        return SnapshotResult(
            passed=False,
            message=message,
            recorded=True,
            reference_path=path,
        )

    path = store.path_for(name, extension)
    reference = diffing.from_data(store.load(name, extension))
    report = diffing.diff(reference, image)
    if report is None:
        return SnapshotResult(passed=True, reference_path=path)
    logger.debug("Snapshot %s does not match: %s", name, report.message)
    return SnapshotResult(
        passed=False,
        message=f"Snapshot does not match reference.\n\n@{path}\n\n{report.message}",
        attachments=report.attachments,
        reference_path=path,
    )


def assert_snapshot(
    image: Image,
    name: str,
    store: SnapshotStore | None = None,
    snapshotting: Snapshotting | None = None,
    record: bool | None = None,
    artifacts_dir: str | Path | None = None,
) -> None:
    """Assert an image matches its stored reference.

    Failure attachments are written to artifacts_dir (config.ARTIFACTS_DIR
    by default) if one is configured.

    Raises:
        SnapshotMismatchError: If the snapshot differs or was recorded
    """
    snapshotting = snapshotting or Snapshotting.image()
    result = verify_snapshot(image, name, store, snapshotting, record)
    if result.passed:
        return
    artifacts_dir = artifacts_dir if artifacts_dir is not None else config.ARTIFACTS_DIR
    if artifacts_dir is not None and result.attachments:
        write_artifacts(name, result.attachments, artifacts_dir, snapshotting)
    raise SnapshotMismatchError(result)


__all__ = [
    'sanitize_name',
    'SnapshotStore',
    'SnapshotResult',
    'SnapshotMismatchError',
    'write_artifacts',
    'verify_snapshot',
    'assert_snapshot',
]
