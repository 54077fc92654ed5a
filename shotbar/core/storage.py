"""Persisting captured frames.

File naming, destination resolution, session folders and PNG writing.
Files are named ``<prefix>_<YYYYMMDD_HHmmss>.png`` and land in the
session folder, else the configured folder, else the platform default.
"""

import io
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

import numpy as np
from PIL import Image

from .constants import FILENAME_PREFIX_DEFAULT, IMAGE_EXT, TIMESTAMP_FORMAT


class PersistError(Exception):
    """Raised when a frame could not be written."""

    pass


class SessionFolderError(Exception):
    """Raised when the per-run session folder could not be created."""

    pass


def format_timestamp(timestamp: datetime) -> str:
    """Format a timestamp as YYYYMMDD_HHmmss."""
    return timestamp.strftime(TIMESTAMP_FORMAT)


def build_filename(prefix: str, timestamp: datetime, ext: str = IMAGE_EXT) -> str:
    """Build ``<prefix>_<YYYYMMDD_HHmmss>.<ext>``.

    An empty prefix falls back to ``capture``.
    """
    prefix = prefix or FILENAME_PREFIX_DEFAULT
    return f"{prefix}_{format_timestamp(timestamp)}.{ext}"


def default_save_dir() -> Path:
    """Platform default destination: the desktop, else the home folder."""
    home = Path.home()
    desktop = home / "Desktop"
    return desktop if desktop.is_dir() else home


def resolve_destination(
    session_folder: Optional[Path],
    save_folder: str,
    default_dir: Path,
) -> Path:
    """Pick the destination directory for a frame.

    Order: session folder -> configured folder (if non-empty) -> default.
    """
    if session_folder is not None:
        return session_folder
    if save_folder.strip():
        return Path(save_folder).expanduser()
    return default_dir


def create_session_folder(base: Path, timestamp: datetime) -> Path:
    """Create ``base/<YYYYMMDD_HHmmss>`` for a run.

    An existing folder of the same name is reused.

    Raises:
        SessionFolderError: If the folder could not be created
    """
    folder = base / format_timestamp(timestamp)
    try:
        folder.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise SessionFolderError(f"Cannot create session folder {folder}: {e}") from e
    return folder


def encode_png(image: np.ndarray) -> bytes:
    """Encode a captured frame as PNG.

    Args:
        image: BGRA (mss), BGR or grayscale uint8 array

    Returns:
        PNG file content
    """
    if image.ndim == 2:
        pil_image = Image.fromarray(image.astype(np.uint8))
    elif image.shape[2] == 4:
        # BGRA -> RGB, screen alpha carries no information
        rgb = np.ascontiguousarray(image[:, :, 2::-1])
        pil_image = Image.fromarray(rgb)
    else:
        rgb = np.ascontiguousarray(image[:, :, ::-1])
        pil_image = Image.fromarray(rgb)

    out = io.BytesIO()
    pil_image.save(out, format="PNG")
    return out.getvalue()


def save_image(
    image: np.ndarray,
    destination: Union[str, Path],
    prefix: str,
    timestamp: datetime,
) -> Path:
    """Write ``image`` as PNG under ``destination``.

    Returns:
        Path of the written file

    Raises:
        PersistError: If encoding or writing fails
    """
    path = Path(destination) / build_filename(prefix, timestamp)
    try:
        data = encode_png(image)
        path.write_bytes(data)
    except (OSError, ValueError, TypeError) as e:
        raise PersistError(f"Cannot save {path}: {e}") from e
    return path
