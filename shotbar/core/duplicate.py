"""Duplicate frame detection.

A DuplicateJudge remembers the previous frame and tells whether the
next one is "the same". Two strategies:
- ExactMatchJudge: byte-exact comparison of the PNG encoding
- SimilarityJudge: mean grayscale difference against a cutoff

Both compare against the immediately preceding frame only, return
False for the first frame after reset(), and are monotonic in the
threshold (a smaller threshold never matches more pairs).
"""

import hashlib
from abc import ABC, abstractmethod
from typing import Optional

import numpy as np

from .capture import to_grayscale
from .constants import DUPLICATE_THRESHOLD_DEFAULT, SIMILARITY_MAX_SIDE
from .model import DuplicateStrategy
from .storage import encode_png


class DuplicateJudge(ABC):
    """Compares each frame with the one before it."""

    @abstractmethod
    def reset(self) -> None:
        """Forget the remembered frame. Call before every run."""

    @abstractmethod
    def set_threshold(self, value: float) -> None:
        """Configure the strategy-specific sensitivity."""

    @abstractmethod
    def is_duplicate(self, image: np.ndarray) -> bool:
        """Compare ``image`` with the previous frame, then remember it."""


class ExactMatchJudge(DuplicateJudge):
    """Duplicate iff the PNG encodings are byte-identical.

    Only a digest of the previous encoding is kept. The threshold is
    accepted for interface compatibility and ignored.
    """

    def __init__(self) -> None:
        self._last_digest: Optional[bytes] = None
        self._threshold = 0.0

    @property
    def threshold(self) -> float:
        return self._threshold

    def reset(self) -> None:
        self._last_digest = None

    def set_threshold(self, value: float) -> None:
        self._threshold = value

    def is_duplicate(self, image: np.ndarray) -> bool:
        try:
            digest = hashlib.sha256(encode_png(image)).digest()
        except (ValueError, TypeError):
            # Unencodable frame: not a duplicate, and nothing to compare next time
            self._last_digest = None
            return False

        duplicate = self._last_digest is not None and digest == self._last_digest
        self._last_digest = digest
        return duplicate


def downscale(frame: np.ndarray, max_side: int = SIMILARITY_MAX_SIDE) -> np.ndarray:
    """Block-average a frame so neither side exceeds ``max_side``.

    Edges are padded by replication up to a whole block, so every pixel
    contributes to the result.
    """
    height, width = frame.shape[:2]
    step = max(1, -(-max(height, width) // max_side))
    if step == 1:
        return frame

    pad_h = -height % step
    pad_w = -width % step
    padding = [(0, pad_h), (0, pad_w)] + [(0, 0)] * (frame.ndim - 2)
    padded = np.pad(frame, padding, mode="edge")
    blocks = padded.reshape(
        (height + pad_h) // step, step, (width + pad_w) // step, step, *frame.shape[2:]
    )
    return blocks.mean(axis=(1, 3), dtype=np.float32)


def _frame_digest(image: np.ndarray) -> bytes:
    """Digest of the color channels at full resolution."""
    pixels = image[:, :, :3] if image.ndim == 3 else image
    return hashlib.sha256(np.ascontiguousarray(pixels).tobytes()).digest()


def calculate_diff(frame_t: np.ndarray, frame_t0: np.ndarray) -> float:
    """Calculate the difference between two frames.

    1. Convert both frames to grayscale
    2. absdiff = abs(frame_t - frame_t0)
    3. d = mean(absdiff) / 255.0

    Args:
        frame_t: Current frame
        frame_t0: Reference frame

    Returns:
        Diff value in range [0.0, 1.0]

    Raises:
        ValueError: If frames have different shapes
    """
    if frame_t.shape != frame_t0.shape:
        raise ValueError(f"Frame shapes must match: {frame_t.shape} vs {frame_t0.shape}")

    if frame_t.ndim == 3:
        frame_t = to_grayscale(frame_t)
    if frame_t0.ndim == 3:
        frame_t0 = to_grayscale(frame_t0)

    # float32 avoids wrap-around and keeps block averages intact
    absdiff = np.abs(frame_t.astype(np.float32) - frame_t0.astype(np.float32))

    return float(np.mean(absdiff)) / 255.0


class SimilarityJudge(DuplicateJudge):
    """Duplicate iff the mean grayscale difference is within the threshold.

    The threshold is a fraction of full scale: 0 only matches identical
    frames, 0.01 tolerates a 1% average change. Large frames are compared
    on block averages; a zero threshold compares full-resolution pixels
    instead. Frames of a different size are never duplicates.
    """

    def __init__(self, threshold: float = DUPLICATE_THRESHOLD_DEFAULT) -> None:
        self._threshold = threshold
        self._reference: Optional[np.ndarray] = None
        self._reference_shape: Optional[tuple[int, ...]] = None
        self._reference_digest: Optional[bytes] = None
        self._last_diff: Optional[float] = None

    @property
    def threshold(self) -> float:
        return self._threshold

    @property
    def last_diff(self) -> Optional[float]:
        """Difference computed by the last comparison, if any."""
        return self._last_diff

    def reset(self) -> None:
        self._reference = None
        self._reference_shape = None
        self._reference_digest = None
        self._last_diff = None

    def set_threshold(self, value: float) -> None:
        if value < 0:
            raise ValueError(f"Threshold must be >= 0, got {value}")
        self._threshold = value

    def is_duplicate(self, image: np.ndarray) -> bool:
        frame = downscale(to_grayscale(image))
        digest = _frame_digest(image) if self._threshold == 0 else None

        reference = self._reference
        reference_shape = self._reference_shape
        reference_digest = self._reference_digest
        self._reference = frame
        self._reference_shape = image.shape[:2]
        self._reference_digest = digest

        if reference is None or reference_shape != image.shape[:2]:
            self._last_diff = None
            return False

        self._last_diff = calculate_diff(frame, reference)
        if self._threshold == 0:
            return digest is not None and digest == reference_digest
        return self._last_diff <= self._threshold


def create_judge(strategy: DuplicateStrategy) -> DuplicateJudge:
    """Create the judge for a strategy."""
    if strategy == DuplicateStrategy.SIMILARITY:
        return SimilarityJudge()
    return ExactMatchJudge()
