"""
Tag assignment request.

Constructed once per invocation and consumed once by the assignment
service; never persisted.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..errors import ValidationError
from .tag import TagType
from .version import SemanticVersion, parse

_TRUE_VALUES = ('true', '1', 'yes', 'on')


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in _TRUE_VALUES


@dataclass(frozen=True)
class TagAssignmentRequest:
    """
    Request to create or move one governed tag.

    Attributes:
        tag_type: version, environment or state
        version: Version to tag (version tags) or to mark (state tags)
        environment: Environment name for environment tags
        state: Lifecycle state for state tags
        subproject: Optional subproject qualifier
        target_commit: Revision the tag should point at
        force: Allow moving an existing immutable tag
        push: Push the resulting tag to the remote
    """

    tag_type: TagType
    version: Optional[SemanticVersion] = None
    environment: Optional[str] = None
    state: Optional[str] = None
    subproject: Optional[str] = None
    target_commit: str = "HEAD"
    force: bool = False
    push: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TagAssignmentRequest':
        """
        Build a request from an invocation payload.

        Raises:
            ValidationError: on a missing or unknown tag type
            ParseError: on a malformed version
        """
        raw_type = data.get('type') or data.get('tag_type')
        if not raw_type:
            raise ValidationError("Tag type is required (version, environment or state)")
        try:
            tag_type = TagType.parse(str(raw_type))
        except ValueError as e:
            raise ValidationError(str(e))

        version = data.get('version')
        if version and not isinstance(version, SemanticVersion):
            version = parse(str(version))

        return cls(
            tag_type=tag_type,
            version=version or None,
            environment=data.get('environment') or None,
            state=data.get('state') or None,
            subproject=data.get('subproject') or None,
            target_commit=data.get('commit') or data.get('target_commit') or "HEAD",
            force=_as_bool(data.get('force')),
            push=_as_bool(data.get('push')),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.tag_type.value,
            'version': str(self.version) if self.version else None,
            'environment': self.environment,
            'state': self.state,
            'subproject': self.subproject,
            'commit': self.target_commit,
            'force': self.force,
            'push': self.push,
        }
