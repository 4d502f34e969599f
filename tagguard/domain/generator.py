"""
Canonical tag names and annotation messages.
"""

from typing import TYPE_CHECKING, Optional, Union

from .tag import TagType
from .version import SemanticVersion

if TYPE_CHECKING:
    from .request import TagAssignmentRequest


def version_tag(
    major: int,
    minor: int,
    patch: int,
    prerelease: Optional[str] = None,
    build: Optional[str] = None,
) -> str:
    """Assemble v<major>.<minor>.<patch>[-<prerelease>][+<build>]."""
    return str(SemanticVersion(int(major), int(minor), int(patch), prerelease or None, build or None))


def state_tag(
    version_or_commit: Union[str, SemanticVersion],
    state: str,
    subproject: Optional[str] = None,
) -> str:
    """Assemble <versionOrCommit>[-<subproject>]-<state>."""
    name = str(version_or_commit)
    if subproject:
        name += f"-{subproject}"
    return f"{name}-{state}"


def annotation_message(
    tag_type: Union[TagType, str],
    name: str,
    description: str,
    **fields: Optional[str],
) -> str:
    """
    Build an annotated-tag body.

    Example:
        >>> print(annotation_message(TagType.VERSION, "v1.2.3", "Created version tag",
        ...                          commit="abc1234"))
        Created version tag: v1.2.3
        <BLANKLINE>
        Type: version
        Tag: v1.2.3
        Commit: abc1234
    """
    type_name = tag_type.value if isinstance(tag_type, TagType) else str(tag_type)

    lines = [
        f"{description}: {name}",
        "",
        f"Type: {type_name}",
        f"Tag: {name}",
    ]
    for key, value in fields.items():
        if value:
            label = key.replace('_', ' ').capitalize()
            lines.append(f"{label}: {value}")

    return '\n'.join(lines)


def tag_name_for(request: 'TagAssignmentRequest', commit: Optional[str] = None) -> str:
    """
    Build the tag name an assignment request refers to.

    Version tags with a subproject get a "-<subproject>" suffix. State
    tags without a version mark the (short) target commit instead.
    """
    if request.tag_type == TagType.VERSION:
        v = request.version
        if not v:
            return ""
        if request.subproject:
            prerelease = f"{v.prerelease}-{request.subproject}" if v.prerelease else request.subproject
            return version_tag(v.major, v.minor, v.patch, prerelease, v.build)
        return str(v)

    if request.tag_type == TagType.ENVIRONMENT:
        return request.environment or ""

    if request.tag_type == TagType.STATE:
        identifier = str(request.version) if request.version else (commit or "")[:7]
        return state_tag(identifier, request.state or "", request.subproject)

    return ""
