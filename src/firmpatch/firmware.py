"""Firmware image file I/O."""

import shutil
import logging
from datetime import datetime
from pathlib import Path

logger = logging.getLogger(__name__)


def load_firmware(path: str | Path) -> bytearray:
    """Load a firmware image as a mutable buffer."""
    path = Path(path)
    with open(path, "rb") as f:
        data = bytearray(f.read())
    logger.info("Loaded firmware: %d bytes from %s", len(data), path)
    return data


def save_firmware(firmware: bytes | bytearray, path: str | Path) -> Path:
    """Write a firmware image, creating parent directories as needed."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "wb") as f:
        f.write(firmware)
    logger.info("Saved firmware: %d bytes to %s", len(firmware), path)
    return path


def create_backup(path: str | Path, now: datetime | None = None) -> Path:
    """Copy a firmware file to ``<path>.backup_YYYYmmdd_HHMMSS``."""
    path = Path(path)
    now = now or datetime.now()
    backup = path.with_name(f"{path.name}.backup_{now:%Y%m%d_%H%M%S}")
    shutil.copyfile(path, backup)
    logger.info("Created backup: %s", backup)
    return backup
