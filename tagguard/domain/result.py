"""
Result domain objects for tagguard.

Provides standardized result types for tag assignments and push-time
protection checks, serialized as JSON for CI consumers.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, List, Optional

from ..exit_codes import SUCCESS, PROTECTION_VIOLATION


class ResultStatus(Enum):
    """Outcome of an assignment or protection check."""
    CREATED = "created"
    MOVED = "moved"
    UNCHANGED = "unchanged"
    REFUSED = "refused"
    BLOCKED = "blocked"
    WARNED = "warned"
    PASSED = "passed"
    SKIPPED = "skipped"
    ERROR = "error"
    TIMEOUT = "timeout"


class ViolationRule(Enum):
    """Push-time invariant that a reference broke."""
    FEATURE_TAG = "feature_tag"
    IMMUTABLE_MOVED = "immutable_moved"
    IMMUTABLE_DELETED = "immutable_deleted"


@dataclass
class AssignmentResult:
    """
    Outcome of one tag assignment.

    A forced move of an immutable tag reports status MOVED with
    forced=True, along with both the previous and the new commit.
    """
    status: ResultStatus
    tag_name: str = ""
    tag_type: Optional[str] = None
    target_commit: Optional[str] = None
    previous_commit: Optional[str] = None
    forced: bool = False
    dry_run: bool = False
    action: str = ""  # e.g., "create", "move", "force_move", "refuse", "would_create"
    details: str = ""
    error: Optional[str] = None
    exit_code: int = SUCCESS
    pushed: List[str] = field(default_factory=list)
    push_rejected: Dict[str, str] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.exit_code == SUCCESS

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = {
            'status': self.status.value,
            'tag': self.tag_name,
            'type': self.tag_type,
            'action': self.action,
            'details': self.details,
            'exit_code': self.exit_code,
        }
        if self.target_commit:
            result['commit'] = self.target_commit
        if self.previous_commit:
            result['previous_commit'] = self.previous_commit
        if self.forced:
            result['forced'] = True
        if self.dry_run:
            result['dry_run'] = True
        if self.error:
            result['error'] = self.error
        if self.pushed:
            result['pushed'] = self.pushed
        if self.push_rejected:
            result['push_rejected'] = self.push_rejected
        return result


@dataclass(frozen=True)
class PushRef:
    """
    One tag reference in a push.

    commit is the local object the tag will point at, when known;
    source is the local tag name it is pushed from.
    deleted is set when the push removes the tag from the remote.
    """
    name: str
    commit: Optional[str] = None
    source: Optional[str] = None
    deleted: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "commit": self.commit,
            "source": self.source,
            "deleted": self.deleted,
        }


@dataclass(frozen=True)
class Violation:
    """A pushed tag reference that breaks protection policy."""
    tag: str
    tag_type: str
    rule: ViolationRule
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'tag': self.tag,
            'type': self.tag_type,
            'rule': self.rule.value,
            'message': self.message,
        }


@dataclass
class ProtectionResult:
    """
    Outcome of a push-time protection check.

    Lists every violating reference found in one pass, plus
    non-blocking warnings for tags outside the recommended patterns.
    """
    status: ResultStatus
    mode: str
    checked: List[str] = field(default_factory=list)
    violations: List[Violation] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    dry_run: bool = False
    details: str = ""
    exit_code: int = SUCCESS
    # ENFORCE violations let through by the admin override
    overridden: bool = False
    # False when existing tags could not be listed from the remote
    immutability_checked: bool = True

    @property
    def violating_tags(self) -> List[str]:
        seen = []
        for violation in self.violations:
            if violation.tag not in seen:
                seen.append(violation.tag)
        return seen

    @property
    def blocked(self) -> bool:
        return self.exit_code == PROTECTION_VIOLATION

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result = {
            'status': self.status.value,
            'mode': self.mode,
            'details': self.details,
            'checked': self.checked,
            'exit_code': self.exit_code,
        }
        if self.violations:
            result['violating_tags'] = self.violating_tags
            result['violations'] = [v.to_dict() for v in self.violations]
        if self.warnings:
            result['warnings'] = self.warnings
        if self.dry_run:
            result['dry_run'] = True
        if self.overridden:
            result['overridden'] = True
        if not self.immutability_checked:
            result['immutability_checked'] = False
        return result
