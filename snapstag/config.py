"""Snapshot comparison configuration.

Module level defaults which can be overridden through environment
variables before :mod:`snapstag` is imported.
"""
import os
from pathlib import Path


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}")


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in {"1", "true", "yes", "on"}


# Scale used when decoding reference images if none was specified
# (equivalent to the rendering scale of the capturing device)
DEFAULT_SCALE: float = _env_float("SNAPSTAG_DEFAULT_SCALE", 1.0)

# Root directory for reference snapshots
SNAPSHOT_DIR = Path(os.environ.get("SNAPSTAG_SNAPSHOT_DIR", "__snapshots__"))

# Directory failure artifacts (reference, failure, difference) are written to.
# Unset = artifacts are only attached to the raised error.
_artifacts_dir = os.environ.get("SNAPSTAG_ARTIFACTS_DIR")
ARTIFACTS_DIR: Path | None = Path(_artifacts_dir) if _artifacts_dir else None

# Re-record all snapshots instead of comparing them
RECORD: bool = _env_flag("SNAPSTAG_RECORD")

# Storage format of reference snapshots
SNAPSHOT_EXTENSION = "png"

# Default worker count for batch comparisons (None = executor default)
MAX_WORKERS: int | None = None


def resolve_scale(scale: float | None) -> float:
    """Get the effective scale for decoding stored snapshots.

    Args:
        scale: Requested scale. None or 0.0 selects DEFAULT_SCALE.

    Returns:
        The scale to use
    """
    if scale is None or scale == 0.0:
        return DEFAULT_SCALE
    if scale < 0:
        raise ValueError(f"Scale must be positive, got {scale}")
    return float(scale)


__all__ = [
    'DEFAULT_SCALE',
    'SNAPSHOT_DIR',
    'ARTIFACTS_DIR',
    'RECORD',
    'SNAPSHOT_EXTENSION',
    'MAX_WORKERS',
    'resolve_scale',
]
