"""
Tag domain object and classifier for tagguard.

Git tags governed by tagguard fall into five categories:
- Version tags:      "v1.2.3", "v2.0.0-rc.1+build.7"
- Environment tags:  "production", "staging", "development"
- State tags:        "v1.2.3-stable", "abc1234-api-testing"
- Feature tags:      "feature/login", "hotfix/crash" (never allowed)
- Unknown:           anything else

A tag's type is a pure function of its name. Classification is an
ordered list of (predicate, type) rules; the first match wins.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Tuple

from .version import is_version

ENVIRONMENTS = ('production', 'staging', 'development')
STATES = ('testing', 'stable', 'unstable', 'deprecated', 'maintenance')
FEATURE_PREFIXES = ('feature/', 'hotfix/')

COMMIT_TOKEN_RE = re.compile(r'^[0-9A-Za-z]+\Z')
STATE_SUFFIX_RE = re.compile(rf'^(?P<rest>.+)-(?P<state>{"|".join(STATES)})\Z')
STATE_SUBPROJECT_RE = re.compile(r'^[a-zA-Z][a-zA-Z0-9_]*\Z')


class TagType(Enum):
    """Category of a git tag."""
    VERSION = "version"
    ENVIRONMENT = "environment"
    STATE = "state"
    FEATURE = "feature"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: str) -> 'TagType':
        try:
            return cls(value.strip().lower())
        except ValueError:
            valid = ', '.join(t.value for t in cls)
            raise ValueError(f"Unknown tag type '{value}': must be one of {valid}")

    @property
    def immutable(self) -> bool:
        """Version and state tags never move without force."""
        return self in (TagType.VERSION, TagType.STATE)


@dataclass(frozen=True)
class StateTagParts:
    """Components of a state tag name."""
    identifier: str
    state: str
    subproject: Optional[str] = None


def _is_identifier(value: str) -> bool:
    return is_version(value) or bool(COMMIT_TOKEN_RE.match(value))


def parse_state_tag(name: str) -> Optional[StateTagParts]:
    """
    Split a state tag into identifier, optional subproject and state.

    "v1.2.3-api-stable" -> ("v1.2.3", "stable", subproject="api")
    "abc1234-testing"   -> ("abc1234", "testing")

    A trailing "-<segment>" before the state is read as a subproject
    when the segment looks like one and the remainder is still a valid
    identifier. Returns None if the name is not state-shaped.
    """
    match = STATE_SUFFIX_RE.match(name or '')
    if not match:
        return None

    rest = match.group('rest')
    state = match.group('state')

    if '-' in rest:
        identifier, _, subproject = rest.rpartition('-')
        if STATE_SUBPROJECT_RE.match(subproject) and _is_identifier(identifier):
            return StateTagParts(identifier=identifier, state=state, subproject=subproject)

    if _is_identifier(rest):
        return StateTagParts(identifier=rest, state=state)

    return None


# Ordered classification rules, first match wins
CLASSIFICATION_RULES: List[Tuple[Callable[[str], bool], TagType]] = [
    (is_version, TagType.VERSION),
    (lambda name: name in ENVIRONMENTS, TagType.ENVIRONMENT),
    (lambda name: parse_state_tag(name) is not None, TagType.STATE),
    (lambda name: name.startswith(FEATURE_PREFIXES), TagType.FEATURE),
]


def classify(name: str) -> TagType:
    """Determine the type of a tag from its name."""
    if not isinstance(name, str):
        return TagType.UNKNOWN

    for predicate, tag_type in CLASSIFICATION_RULES:
        if predicate(name):
            return tag_type
    return TagType.UNKNOWN


def is_movable(name: str) -> bool:
    """Only environment tags may be moved without force."""
    return classify(name) == TagType.ENVIRONMENT


def strip_ref(ref: str) -> str:
    """Strip a leading refs/tags/ from a reference."""
    ref = ref.strip()
    if ref.startswith('refs/tags/'):
        return ref[len('refs/tags/'):]
    return ref


@dataclass(frozen=True)
class Tag:
    """
    A git tag with its classification.

    Tags are never mutated in place; moving one is a delete and
    recreate at the repository level.
    """

    name: str
    type: TagType
    commit: str = ""
    subproject: Optional[str] = None

    @classmethod
    def from_name(cls, name: str, commit: str = "") -> 'Tag':
        """Build a Tag, classifying it from its name."""
        tag_type = classify(name)
        subproject = None
        if tag_type == TagType.STATE:
            parts = parse_state_tag(name)
            subproject = parts.subproject if parts else None
        return cls(name=name, type=tag_type, commit=commit, subproject=subproject)

    @property
    def immutable(self) -> bool:
        return self.type.immutable

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        result = {
            'name': self.name,
            'type': self.type.value,
            'commit': self.commit,
        }
        if self.subproject:
            result['subproject'] = self.subproject
        return result

    def __str__(self) -> str:
        return self.name


def to_tag(name: str, commit: str = "") -> Tag:
    return Tag.from_name(strip_ref(name), commit=commit)


def filter_tags(tags: List[Tag], tag_type: Optional[TagType] = None,
                subproject: Optional[str] = None) -> List[Tag]:
    """Filter tags by type and/or subproject."""
    result = tags
    if tag_type is not None:
        result = [t for t in result if t.type == tag_type]
    if subproject:
        result = [t for t in result if t.subproject == subproject]
    return result
