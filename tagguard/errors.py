"""
Error taxonomy for tag governance.

Every error carries the exit code a CLI or hook should return and a
message that names the violated rule, e.g. "version tag v1.2.0 is
immutable". Services convert these into structured results; nothing
here is meant to abort the surrounding process.
"""

from typing import Optional, Dict, Any

from .exit_codes import (
    CommandError,
    NOT_FOUND,
    VALIDATION_ERROR,
    CONFLICT,
    REPOSITORY_ERROR,
    PROTECTION_VIOLATION,
    PARSE_ERROR,
)


class TagGuardError(CommandError):
    """Base class for tag governance errors."""
    kind = "error"

    def to_dict(self) -> Dict[str, Any]:
        return {'error': self.message, 'type': self.kind}


class ParseError(TagGuardError, ValueError):
    """Malformed semantic version string."""
    kind = "parse_error"

    def __init__(self, message: str, value: Optional[str] = None):
        super().__init__(message, PARSE_ERROR)
        self.value = value


class ValidationError(TagGuardError, ValueError):
    """Tag name or request fails its type's grammar."""
    kind = "validation_error"

    def __init__(self, message: str, tag: Optional[str] = None):
        super().__init__(message, VALIDATION_ERROR)
        self.tag = tag


class ConflictError(TagGuardError):
    """An immutable tag would move without force."""
    kind = "conflict"

    def __init__(
        self,
        message: str,
        tag: Optional[str] = None,
        existing_commit: Optional[str] = None,
        requested_commit: Optional[str] = None,
    ):
        super().__init__(message, CONFLICT)
        self.tag = tag
        self.existing_commit = existing_commit
        self.requested_commit = requested_commit


class NotFoundError(TagGuardError, LookupError):
    """Referenced tag, commit or version does not exist."""
    kind = "not_found"

    def __init__(self, message: str, ref: Optional[str] = None):
        super().__init__(message, NOT_FOUND)
        self.ref = ref


class RepositoryError(TagGuardError):
    """
    An underlying git create/delete/push operation failed.

    Carries the operation, tag and commit so a caller can decide
    whether to retry. Never retried automatically.
    """
    kind = "repository_error"

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        tag: Optional[str] = None,
        commit: Optional[str] = None,
        stderr: Optional[str] = None,
    ):
        super().__init__(message, REPOSITORY_ERROR)
        self.operation = operation
        self.tag = tag
        self.commit = commit
        self.stderr = stderr

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        context = {
            'operation': self.operation,
            'tag': self.tag,
            'commit': self.commit,
        }
        result['context'] = {k: v for k, v in context.items() if v}
        return result


class TagExistsError(RepositoryError):
    """git refused to create a tag because the name is already taken."""
    kind = "tag_exists"


class ProtectionViolation(TagGuardError):
    """A push breaches tag protection policy."""
    kind = "protection_violation"

    def __init__(self, message: str, tags=None):
        super().__init__(message, PROTECTION_VIOLATION)
        self.tags = list(tags or [])
