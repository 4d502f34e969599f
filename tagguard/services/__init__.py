"""
Service layer for tagguard.

Contains the governance logic that orchestrates domain objects and the
git client:
- AssignmentService: Create, move or refuse one governed tag
- ProtectionService: Check tag references at push time
- StatusService: Read-only tag overview and consistency check
- simulate: Behavior-mode overlay shared by the governance services

Services receive resolved GovernanceSettings and a git client; tests
pass an in-memory fake and a fake sleep function.
"""

from .assignment_service import AssignmentService, validate_request
from .protection_service import ProtectionService, parse_push_refs, parse_pre_push_lines
from .behavior import SimulatedOutcome, simulate
from .status_service import ConsistencyIssue, StatusService, TagStatus, check_consistency, tag_status

__all__ = [
    'AssignmentService',
    'ConsistencyIssue',
    'ProtectionService',
    'SimulatedOutcome',
    'StatusService',
    'TagStatus',
    'check_consistency',
    'parse_push_refs',
    'parse_pre_push_lines',
    'simulate',
    'tag_status',
    'validate_request',
]
