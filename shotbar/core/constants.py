"""Global constants and settings defaults for ShotBar."""

from typing import Final

# Timing constants
COUNTDOWN_TICK_SEC: Final[float] = 1.0
"""Length of one countdown tick before the first capture"""

SINGLE_SHOT_DELAY_SEC: Final[float] = 1.0
"""Fixed pre-delay of a single shot"""

# Settings defaults
MAX_COUNT_DEFAULT: Final[int] = 50
"""Default number of iterations per run"""

MAX_COUNT_LIMIT: Final[int] = 999
"""Largest iteration count offered by the settings form"""

INITIAL_DELAY_DEFAULT: Final[float] = 5.0
"""Default countdown before the first capture (seconds)"""

INTERVAL_DEFAULT: Final[float] = 1.0
"""Default wait between iterations (seconds)"""

DUPLICATE_THRESHOLD_DEFAULT: Final[float] = 0.01
"""Default similarity cutoff (mean gray difference, 0..1)"""

FILENAME_PREFIX_DEFAULT: Final[str] = "capture"
"""Prefix used when the configured prefix is empty"""

SOUND_NONE: Final[str] = "None"
SOUND_BEEP: Final[str] = "Beep"

COUNTDOWN_SOUND_DEFAULT: Final[str] = SOUND_BEEP
COMPLETION_SOUND_DEFAULT: Final[str] = SOUND_NONE

# Persisted file naming
TIMESTAMP_FORMAT: Final[str] = "%Y%m%d_%H%M%S"
"""Timestamp used in file names and session folder names (YYYYMMDD_HHmmss)"""

IMAGE_EXT: Final[str] = "png"

# Duplicate detection
SIMILARITY_MAX_SIDE: Final[int] = 512
"""Frames are strided down to at most this many pixels per side before comparing"""

# Grayscale conversion weights (ITU-R BT.601)
GRAY_WEIGHT_R: Final[float] = 0.299
GRAY_WEIGHT_G: Final[float] = 0.587
GRAY_WEIGHT_B: Final[float] = 0.114

# UI constants
LOG_BUFFER_SIZE: Final[int] = 200
"""Maximum entries kept in the circular log buffer"""
