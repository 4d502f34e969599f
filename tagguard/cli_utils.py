"""
Common CLI utilities and decorators for consistent command behavior.
"""

import logging
import sys
import click
from functools import wraps

from .domain.modes import BehaviorMode, ProtectionMode
from .exit_codes import (
    SUCCESS, INTERRUPTED,
    get_exit_code_for_exception, CommandError
)
from .output import emit_error

logger = logging.getLogger(__name__)


def standard_command(func):
    """
    Decorator that provides standard CLI behavior:
    - Clean JSON output on stdout, diagnostics on stderr
    - Exit code taken from the command's return value
    - Consistent error handling

    The wrapped command prints its own output and returns the exit code
    (or None for success).
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            code = func(*args, **kwargs)
            sys.exit(code or SUCCESS)

        except KeyboardInterrupt:
            logger.error("Interrupted by user")
            sys.exit(INTERRUPTED)
        except click.ClickException:
            # Click exceptions already have their exit code
            raise
        except CommandError as e:
            logger.error(e.message)
            context = e.to_dict().get('context') if hasattr(e, 'to_dict') else None
            emit_error(e.message, type=e.kind, context=context, exit_code=e.exit_code)
            sys.exit(e.exit_code)
        except Exception as e:
            logger.error(f"Command failed: {e}")
            code = get_exit_code_for_exception(e)
            emit_error(str(e), type=type(e).__name__, exit_code=code)
            sys.exit(code)

    return wrapper


def _choices(enum_cls):
    return click.Choice([m.value for m in enum_cls], case_sensitive=False)


# Standard options that many commands share
common_options = {
    'repo': click.option('--repo', default='.', show_default=True,
                         type=click.Path(file_okay=False),
                         help='Repository to operate on'),
    'pretty': click.option('--pretty', is_flag=True,
                           help='Display as a formatted table instead of JSONL'),
    'mode': click.option('--mode', type=_choices(BehaviorMode), default=None,
                         help='Behavior mode for this invocation (default: from config)'),
    'protection_mode': click.option('--protection-mode', type=_choices(ProtectionMode), default=None,
                                    help='Protection mode for this invocation (default: from config)'),
}


def add_common_options(*option_names):
    """
    Decorator to add common options to a command.

    Example:
        @add_common_options('repo', 'pretty')
        def my_command(repo, pretty):
            ...
    """
    def decorator(func):
        for name in reversed(option_names):
            if name in common_options:
                func = common_options[name](func)
        return func
    return decorator
