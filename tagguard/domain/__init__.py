"""
Domain layer for tagguard.

Contains pure domain objects with no I/O or side effects:
- SemanticVersion: Parsed, comparable semantic version
- Tag / TagType: Classified git tag
- TagAssignmentRequest: One create-or-move request
- BehaviorMode / ProtectionMode: Execution and policy modes
- AssignmentResult / ProtectionResult: Structured outcomes

Classification, validation and name generation live here too, since
they are pure functions of a tag name.
"""

from .version import SemanticVersion, VersionSuggestion
from .tag import Tag, TagType, StateTagParts, classify, parse_state_tag, to_tag
from .request import TagAssignmentRequest
from .modes import BehaviorMode, ProtectionMode
from .result import (
    AssignmentResult,
    ProtectionResult,
    PushRef,
    ResultStatus,
    Violation,
    ViolationRule,
)

__all__ = [
    'SemanticVersion',
    'VersionSuggestion',
    'Tag',
    'TagType',
    'StateTagParts',
    'classify',
    'parse_state_tag',
    'to_tag',
    'TagAssignmentRequest',
    'BehaviorMode',
    'ProtectionMode',
    'AssignmentResult',
    'ProtectionResult',
    'PushRef',
    'ResultStatus',
    'Violation',
    'ViolationRule',
]
