"""
Semantic version domain object for tagguard.

Versions are written as git tags with a mandatory ``v`` prefix:

    v1.2.3
    v1.2.3-alpha.1
    v1.2.3-rc.2+build.45

Ordering follows semantic versioning: major, minor and patch compare
numerically, a stable release outranks any prerelease of the same
triple, and build metadata is informational only (it never takes part
in ordering, equality or hashing).
"""

import re
from dataclasses import dataclass
from functools import total_ordering
from typing import Iterable, List, Optional, Tuple, Union

from ..errors import NotFoundError, ParseError, ValidationError

_IDENTIFIERS = r'[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*'

VERSION_PATTERN = (
    r'v(?P<major>[0-9]+)\.(?P<minor>[0-9]+)\.(?P<patch>[0-9]+)'
    rf'(?:-(?P<prerelease>{_IDENTIFIERS}))?'
    rf'(?:\+(?P<build>{_IDENTIFIERS}))?'
)
VERSION_RE = re.compile(rf'^{VERSION_PATTERN}\Z')

INCREMENT_KINDS = ('major', 'minor', 'patch')


@total_ordering
@dataclass(frozen=True, eq=False)
class SemanticVersion:
    """
    Parsed semantic version.

    Examples:
        SemanticVersion.parse("v1.2.3")         -> SemanticVersion(1, 2, 3)
        SemanticVersion.parse("v1.2.3-rc.1")    -> prerelease "rc.1"
        str(SemanticVersion(2, 0, 0, "beta"))   -> "v2.0.0-beta"
    """

    major: int
    minor: int
    patch: int
    prerelease: Optional[str] = None
    build: Optional[str] = None

    @classmethod
    def parse(cls, value: str) -> 'SemanticVersion':
        return parse(value)

    @property
    def is_prerelease(self) -> bool:
        return bool(self.prerelease)

    @property
    def core(self) -> Tuple[int, int, int]:
        return (self.major, self.minor, self.patch)

    def __eq__(self, other) -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return compare(self, other) == 0

    def __lt__(self, other) -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return compare(self, other) < 0

    def __hash__(self) -> int:
        # Numeric identifiers compare by value, so "01" and "1" must hash alike
        fields = ()
        if self.prerelease:
            fields = tuple(int(f) if f.isdigit() else f for f in self.prerelease.split('.'))
        return hash((self.major, self.minor, self.patch, fields))

    def __str__(self) -> str:
        text = f"v{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += f"-{self.prerelease}"
        if self.build:
            text += f"+{self.build}"
        return text

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'version': str(self),
            'major': self.major,
            'minor': self.minor,
            'patch': self.patch,
            'prerelease': self.prerelease,
            'build': self.build,
        }


VersionLike = Union[str, SemanticVersion]


def parse(value: str) -> SemanticVersion:
    """
    Parse a ``v<major>.<minor>.<patch>[-<prerelease>][+<build>]`` string.

    Raises:
        ParseError: if the prefix is missing, a numeric component is
            missing or non-numeric, or an identifier is malformed.
    """
    if not isinstance(value, str):
        raise ParseError(f"Version must be a string, got {type(value).__name__}", value=None)

    text = value.strip()
    if not text.startswith('v'):
        raise ParseError(f"Invalid version '{value}': missing 'v' prefix", value=value)

    match = VERSION_RE.match(text)
    if not match:
        raise ParseError(
            f"Invalid version '{value}': expected v<major>.<minor>.<patch>[-<prerelease>][+<build>]",
            value=value,
        )

    return SemanticVersion(
        major=int(match.group('major')),
        minor=int(match.group('minor')),
        patch=int(match.group('patch')),
        prerelease=match.group('prerelease'),
        build=match.group('build'),
    )


def is_version(value: str) -> bool:
    """True if value matches the version grammar."""
    return bool(VERSION_RE.match(value or ''))


def _coerce(value: VersionLike) -> SemanticVersion:
    if isinstance(value, SemanticVersion):
        return value
    return parse(value)


def _cmp(a, b) -> int:
    return (a > b) - (a < b)


def _compare_prerelease(a: str, b: str) -> int:
    left = a.split('.')
    right = b.split('.')

    for x, y in zip(left, right):
        x_num, y_num = x.isdigit(), y.isdigit()
        if x_num and y_num:
            result = _cmp(int(x), int(y))
        elif x_num:
            # numeric identifiers rank below alphanumeric ones
            result = -1
        elif y_num:
            result = 1
        else:
            result = _cmp(x, y)
        if result:
            return result

    return _cmp(len(left), len(right))


def compare(a: VersionLike, b: VersionLike) -> int:
    """
    Compare two versions.

    Returns:
        -1 if a < b, 0 if equal (ignoring build metadata), 1 if a > b
    """
    left = _coerce(a)
    right = _coerce(b)

    result = _cmp(left.core, right.core)
    if result:
        return result

    if not left.prerelease and not right.prerelease:
        return 0
    if not left.prerelease:
        return 1
    if not right.prerelease:
        return -1
    return _compare_prerelease(left.prerelease, right.prerelease)


def latest(versions: Iterable[VersionLike]) -> SemanticVersion:
    """
    Return the greatest version.

    Raises:
        NotFoundError: if versions is empty
    """
    best: Optional[SemanticVersion] = None
    for item in versions:
        candidate = _coerce(item)
        if best is None or compare(candidate, best) > 0:
            best = candidate

    if best is None:
        raise NotFoundError("No versions to compare")
    return best


def sort_versions(versions: Iterable[VersionLike], reverse: bool = False) -> List[SemanticVersion]:
    """Sort versions by precedence (ascending unless reverse)."""
    return sorted((_coerce(v) for v in versions), reverse=reverse)


def _bump_prerelease(prerelease: str) -> str:
    fields = prerelease.split('.')
    if fields[-1].isdigit():
        fields[-1] = str(int(fields[-1]) + 1)
    else:
        fields.append('1')
    return '.'.join(fields)


def increment(version: VersionLike, kind: str = 'patch') -> SemanticVersion:
    """
    Increment a version.

    major resets minor and patch, minor resets patch. A patch increment
    of a prerelease bumps the prerelease counter instead:
    v1.2.3-rc.1 -> v1.2.3-rc.2. Build metadata is always dropped.
    """
    v = _coerce(version)

    if kind == 'major':
        return SemanticVersion(v.major + 1, 0, 0)
    if kind == 'minor':
        return SemanticVersion(v.major, v.minor + 1, 0)
    if kind == 'patch':
        if v.prerelease:
            return SemanticVersion(v.major, v.minor, v.patch, _bump_prerelease(v.prerelease))
        return SemanticVersion(v.major, v.minor, v.patch + 1)

    raise ValidationError(
        f"Invalid increment type '{kind}': must be one of {', '.join(INCREMENT_KINDS)}"
    )


@dataclass(frozen=True)
class VersionSuggestion:
    """Outcome of suggesting the next version from existing tags."""
    current: Optional[SemanticVersion]
    next: Optional[SemanticVersion]
    kind: str
    flagged: bool = False
    reason: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            'current': str(self.current) if self.current else None,
            'next': str(self.next) if self.next else None,
            'kind': self.kind,
            'flagged': self.flagged,
            'reason': self.reason,
        }


def suggest_next(versions: Iterable[VersionLike], kind: str = 'patch') -> VersionSuggestion:
    """
    Suggest the next version after the highest stable release.

    The highest stable version is authoritative. When only prereleases
    exist the suggestion is flagged instead of guessing which
    prerelease track should win.

    Raises:
        NotFoundError: if versions is empty
    """
    if kind not in INCREMENT_KINDS:
        raise ValidationError(
            f"Invalid increment type '{kind}': must be one of {', '.join(INCREMENT_KINDS)}"
        )

    parsed = [_coerce(v) for v in versions]
    if not parsed:
        raise NotFoundError("No version tags found")

    stable = [v for v in parsed if not v.is_prerelease]
    if not stable:
        return VersionSuggestion(
            current=latest(parsed),
            next=None,
            kind=kind,
            flagged=True,
            reason="only prerelease versions exist; choose the release track explicitly",
        )

    current = latest(stable)
    return VersionSuggestion(current=current, next=increment(current, kind), kind=kind)
