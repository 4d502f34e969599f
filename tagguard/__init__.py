"""
tagguard - Git tag governance.

tagguard decides which tags may exist and where they may point:
semantic-version parsing and comparison, tag classification, tag
creation with conflict resolution, and push-time protection.

Quick Start:
    import tagguard

    # Structured invocation (what CI steps and hooks use)
    outcome = tagguard.invoke({
        "operation": "assign",
        "type": "version",
        "version": "v2.0.0",
        "commit": "abc1234",
    })
    print(outcome.result["status"], outcome.exit_code)

    # Push check
    outcome = tagguard.invoke({"operation": "protect"},
                              refs=["refs/tags/feature/x"])

    # Object API over one repository
    tg = tagguard.TagGuard(repo=".")
    tg.assign("environment", environment="production", commit="HEAD")
    print(tg.next_version("minor").next)

    # Pure helpers
    tagguard.compare("v2.0.0", "v1.9.9")      # 1
    tagguard.classify("v1.2.0-stable")        # TagType.VERSION

Tag Types:
    version      v1.2.3[-pre][+build]              immutable
    environment  production, staging, development  movable
    state        <version|commit>[-sub]-<state>    immutable
    feature      feature/..., hotfix/...           never pushed

Domain Objects:
    SemanticVersion, Tag, TagType, TagAssignmentRequest,
    AssignmentResult, ProtectionResult

Services:
    AssignmentService - Create / move / refuse one tag
    ProtectionService - Push-time protection
    StatusService - Read-only tag status and consistency check
"""

__version__ = "0.1.0"

# High-level API
from .api import TagGuard, Invocation, invoke, create

# Domain objects
from .domain import (
    SemanticVersion,
    Tag,
    TagType,
    TagAssignmentRequest,
    BehaviorMode,
    ProtectionMode,
    AssignmentResult,
    ProtectionResult,
    PushRef,
    ResultStatus,
    classify,
)
from .domain.version import parse, compare, latest, increment, suggest_next
from .domain.validation import validate_tag, is_valid

# Services (for advanced use)
from .services import AssignmentService, ProtectionService, StatusService

# Configuration
from .config import load_config, save_config, GovernanceSettings

__all__ = [
    # Version
    "__version__",
    # High-level API
    "TagGuard",
    "Invocation",
    "invoke",
    "create",
    # Domain objects
    "SemanticVersion",
    "Tag",
    "TagType",
    "TagAssignmentRequest",
    "BehaviorMode",
    "ProtectionMode",
    "AssignmentResult",
    "ProtectionResult",
    "PushRef",
    "ResultStatus",
    # Pure helpers
    "classify",
    "parse",
    "compare",
    "latest",
    "increment",
    "suggest_next",
    "validate_tag",
    "is_valid",
    # Services
    "AssignmentService",
    "ProtectionService",
    "StatusService",
    # Configuration
    "load_config",
    "save_config",
    "GovernanceSettings",
]
