"""Advisory free disk space guard.

This module checks free space before chunk writes. The check is
best-effort and racy against other processes consuming space.
"""

from __future__ import annotations

from pathlib import Path
import shutil

from core.byte_units import bytes_to_human_readable
from core.errors import FileDbInsufficientSpaceError
from core.logging_config import get_logger

_LOGGER = get_logger(__name__)


def free_disk_space(target_path: Path) -> int | None:
    """Return free bytes on the filesystem holding a path.

    Missing paths are measured at their nearest existing ancestor.

    Args:
        target_path: File or directory about to be written.

    Returns:
        Free byte count, or None when it cannot be determined.
    """
    probe_path = Path(target_path)
    while not probe_path.exists() and probe_path != probe_path.parent:
        probe_path = probe_path.parent
    try:
        return shutil.disk_usage(probe_path).free
    except OSError as error:
        _LOGGER.warning("disk_usage_unavailable", path=str(probe_path), error=str(error))
        return None


def ensure_free_space(target_path: Path, required_bytes: int, threshold_bytes: int) -> None:
    """Fail before writing when free space is below the configured floor.

    Args:
        target_path: File or directory about to be written.
        required_bytes: Size of the pending write.
        threshold_bytes: Minimum free bytes that must remain available.

    Raises:
        FileDbInsufficientSpaceError: If free space is below the larger of
            the threshold and the pending write size.
    """
    free_bytes = free_disk_space(target_path)
    if free_bytes is None:
        return
    floor_bytes = max(threshold_bytes, required_bytes)
    if free_bytes < floor_bytes:
        raise FileDbInsufficientSpaceError(
            f"Not enough disk space at {target_path}. "
            f"Required: {bytes_to_human_readable(floor_bytes)}, "
            f"Free: {bytes_to_human_readable(free_bytes)}. "
            "Free up space or lower free_space_threshold."
        )
