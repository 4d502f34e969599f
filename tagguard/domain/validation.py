"""
Tag name validation.

Classification answers "what kind of tag is this"; validation answers
"is this tag well-formed for its kind". Validation is stricter: a state
tag must sit on a real version or a hex commit id, environments come
from a fixed list, and subproject names are restricted.
"""

import re
from typing import Optional

from ..errors import ValidationError
from .tag import (
    ENVIRONMENTS,
    STATES,
    TagType,
    classify,
    parse_state_tag,
)
from .version import is_version

HEX_COMMIT_RE = re.compile(r'^[0-9a-fA-F]{4,40}\Z')
SUBPROJECT_RE = re.compile(r'^[a-zA-Z0-9_-]+\Z')
# A version tag's subproject becomes a prerelease identifier
VERSION_SUBPROJECT_RE = re.compile(r'^[0-9A-Za-z-]+\Z')


def validate_subproject(subproject: str) -> str:
    """
    Validate a subproject name used anywhere in a tag.

    Raises:
        ValidationError: if the name is empty or contains characters
            outside [a-zA-Z0-9_-]
    """
    if not subproject or not SUBPROJECT_RE.match(subproject):
        raise ValidationError(
            f"Invalid subproject '{subproject}': only letters, digits, '_' and '-' are allowed",
            tag=subproject,
        )
    return subproject


def validate_version_subproject(subproject: str) -> str:
    """
    Validate a subproject carried by a version tag.

    The subproject is appended to the prerelease, so it must also be a
    semver identifier: letters, digits and '-', no '_'.
    """
    validate_subproject(subproject)
    if not VERSION_SUBPROJECT_RE.match(subproject):
        raise ValidationError(
            f"Invalid subproject '{subproject}' for a version tag: "
            f"only letters, digits and '-' are allowed ('_' is not valid in a version)",
            tag=subproject,
        )
    return subproject


def validate_version_tag(name: str) -> None:
    if not name.startswith('v'):
        raise ValidationError(f"Version tag '{name}' must start with 'v'", tag=name)
    if not is_version(name):
        raise ValidationError(
            f"Version tag '{name}' is not a valid semantic version "
            f"(expected v<major>.<minor>.<patch>[-<prerelease>][+<build>])",
            tag=name,
        )


def validate_environment_tag(name: str) -> None:
    if name not in ENVIRONMENTS:
        raise ValidationError(
            f"Environment tag '{name}' is not allowed: must be one of {', '.join(ENVIRONMENTS)}",
            tag=name,
        )


def validate_state_tag(name: str) -> None:
    if not any(name.endswith(f"-{state}") for state in STATES):
        raise ValidationError(
            f"State tag '{name}' must end with one of: {', '.join(STATES)}",
            tag=name,
        )

    parts = parse_state_tag(name)
    if parts is None:
        raise ValidationError(
            f"State tag '{name}' must be <version-or-commit>[-<subproject>]-<state>",
            tag=name,
        )

    if not (is_version(parts.identifier) or HEX_COMMIT_RE.match(parts.identifier)):
        raise ValidationError(
            f"State tag '{name}' must mark a version (v1.2.3) or a hex commit id, "
            f"got '{parts.identifier}'",
            tag=name,
        )

    if parts.subproject:
        validate_subproject(parts.subproject)


def validate_feature_tag(name: str) -> None:
    raise ValidationError(
        f"Feature branch tag '{name}' is not allowed: feature/ and hotfix/ tags are never governed tags",
        tag=name,
    )


_VALIDATORS = {
    TagType.VERSION: validate_version_tag,
    TagType.ENVIRONMENT: validate_environment_tag,
    TagType.STATE: validate_state_tag,
    TagType.FEATURE: validate_feature_tag,
}


def validate_tag(name: str, expected_type: Optional[TagType] = None) -> TagType:
    """
    Validate a tag name against its type's grammar.

    Args:
        name: Tag name (without refs/tags/)
        expected_type: Validate as this type instead of the classified one

    Returns:
        The type the name was validated as

    Raises:
        ValidationError: naming the rule that failed
    """
    if not name or not name.strip():
        raise ValidationError("Tag name must not be empty", tag=name)

    tag_type = expected_type or classify(name)
    if tag_type == TagType.UNKNOWN:
        raise ValidationError(f"Unknown tag format: '{name}'", tag=name)

    _VALIDATORS[tag_type](name)
    return tag_type


def is_valid(name: str, expected_type: Optional[TagType] = None) -> bool:
    """True if validate_tag accepts the name."""
    try:
        validate_tag(name, expected_type)
    except ValidationError:
        return False
    return True
