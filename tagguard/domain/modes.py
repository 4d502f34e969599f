"""
Execution modes for tag governance.

BehaviorMode is a test-oriented simulation overlay: only EXECUTE
touches the repository, the others short-circuit with a fixed outcome
so CI suites can exercise every branch deterministically.

ProtectionMode decides what the push gate does with a violation.
"""

from enum import Enum

from ..exit_codes import ConfigError


class _ParseableMode(Enum):

    @classmethod
    def parse(cls, value):
        if isinstance(value, cls):
            return value
        text = str(value or '').strip().upper().replace('-', '_')
        try:
            return cls[text]
        except KeyError:
            valid = ', '.join(m.name for m in cls)
            raise ConfigError(f"Invalid {cls.__name__} '{value}': must be one of {valid}")


class BehaviorMode(_ParseableMode):
    """Execution-simulation overlay."""
    EXECUTE = "EXECUTE"    # Perform the real operation
    DRY_RUN = "DRY_RUN"    # Read-only: report what would happen
    PASS = "PASS"          # Report success without touching anything
    FAIL = "FAIL"          # Report a simulated failure
    SKIP = "SKIP"          # Report success without validating
    TIMEOUT = "TIMEOUT"    # Sleep past the caller's deadline, then fail


class ProtectionMode(_ParseableMode):
    """How the push gate treats violations."""
    ENFORCE = "ENFORCE"    # Block the push
    WARN = "WARN"          # Log violations, allow the push
    OFF = "OFF"            # No checks


DEFAULT_BEHAVIOR_MODE = BehaviorMode.EXECUTE
DEFAULT_PROTECTION_MODE = ProtectionMode.ENFORCE
