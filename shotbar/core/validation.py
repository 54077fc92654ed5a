"""Run configuration validation.

Checks a RunConfig before a run is allowed to start.
"""

import math
from dataclasses import dataclass

from .model import RunConfig


@dataclass
class ValidationResult:
    """Result of a validation check.

    Attributes:
        valid: True if validation passed
        errors: List of error messages if validation failed
    """

    valid: bool
    errors: list[str]

    @classmethod
    def success(cls) -> "ValidationResult":
        """Create a successful validation result."""
        return cls(valid=True, errors=[])

    @classmethod
    def failure(cls, *errors: str) -> "ValidationResult":
        """Create a failed validation result with error messages."""
        return cls(valid=False, errors=list(errors))

    def __bool__(self) -> bool:
        """Allow using result in boolean context."""
        return self.valid


def _non_negative(value: float, name: str) -> list[str]:
    if not math.isfinite(value) or value < 0:
        return [f"{name} must be a non-negative number, got {value}"]
    return []


def validate_run_config(config: RunConfig) -> ValidationResult:
    """Validate every numeric field of a run configuration.

    Args:
        config: Configuration snapshot to check

    Returns:
        ValidationResult listing every problem found
    """
    errors: list[str] = []

    if config.max_iterations < 1:
        errors.append(
            f"max_iterations must be at least 1, got {config.max_iterations}"
        )

    errors += _non_negative(config.initial_delay, "initial_delay")
    errors += _non_negative(config.interval, "interval")
    errors += _non_negative(config.duplicate_threshold, "duplicate_threshold")

    if errors:
        return ValidationResult.failure(*errors)
    return ValidationResult.success()
