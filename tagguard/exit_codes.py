"""
Standard exit codes for tagguard commands.

Following Unix/POSIX conventions for command-line tools, so CI steps and
git hooks can branch on the outcome of an assignment or a push check.
"""

# Standard POSIX exit codes
SUCCESS = 0              # Successful termination
GENERAL_ERROR = 1        # General errors
USAGE_ERROR = 2          # Misuse of shell command (wrong arguments, etc.)

# Application-specific exit codes (64-113 are typically available)
NOT_FOUND = 64             # Referenced tag or commit does not exist
VALIDATION_ERROR = 65      # Tag name fails its type's grammar
CONFIG_ERROR = 66          # Configuration file or value error
CONFLICT = 67              # Immutable tag would move without force
REPOSITORY_ERROR = 68      # Underlying git operation failed
PROTECTION_VIOLATION = 69  # Push blocked by tag protection
PARSE_ERROR = 70           # Malformed semantic version
PARTIAL_SUCCESS = 71       # Some operations succeeded, some failed
TIMEOUT = 124              # Simulated or real timeout (matches timeout(1))
INTERRUPTED = 130          # Terminated by Ctrl+C (SIGINT)

# Exit code mappings for common exceptions
EXCEPTION_EXIT_CODES = {
    'FileNotFoundError': GENERAL_ERROR,
    'PermissionError': GENERAL_ERROR,
    'TimeoutError': TIMEOUT,
    'ValueError': VALIDATION_ERROR,
    'KeyError': VALIDATION_ERROR,
    'JSONDecodeError': CONFIG_ERROR,
    'KeyboardInterrupt': INTERRUPTED,
}


def get_exit_code_for_exception(exc: BaseException) -> int:
    """
    Get the appropriate exit code for an exception.

    Exceptions derived from CommandError carry their own code; anything
    else is looked up by class name.

    Args:
        exc: The exception that occurred

    Returns:
        Appropriate exit code
    """
    if isinstance(exc, CommandError):
        return exc.exit_code
    exc_name = exc.__class__.__name__
    return EXCEPTION_EXIT_CODES.get(exc_name, GENERAL_ERROR)


class CommandError(Exception):
    """
    Exception that commands can raise to indicate specific exit codes.
    """
    kind = "error"

    def __init__(self, message: str, exit_code: int = GENERAL_ERROR):
        super().__init__(message)
        self.message = message
        self.exit_code = exit_code


class ConfigError(CommandError):
    """Raised when there's a configuration error."""
    kind = "config_error"

    def __init__(self, message: str):
        super().__init__(message, CONFIG_ERROR)
