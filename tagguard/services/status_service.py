"""
Read-only overview of a repository's governed tags.

Reports where each environment tag points, the most recent version and
state tags, and consistency issues worth a human look: version tags
that share one commit, and tags whose names break their type's rules.
Nothing here creates, moves or deletes a tag.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..domain.tag import ENVIRONMENTS, Tag, TagType
from ..domain.validation import is_valid
from ..domain.version import parse, sort_versions
from ..infra.git_client import GitClient

logger = logging.getLogger(__name__)

DEFAULT_RECENT = 5


@dataclass(frozen=True)
class ConsistencyIssue:
    """One finding of the consistency check."""
    rule: str
    tags: List[str]
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {'rule': self.rule, 'tags': self.tags, 'message': self.message}


@dataclass
class TagStatus:
    """Snapshot of the governed tags in one repository."""
    environments: Dict[str, Optional[str]] = field(default_factory=dict)
    versions: List[Tag] = field(default_factory=list)
    states: List[Tag] = field(default_factory=list)
    issues: List[ConsistencyIssue] = field(default_factory=list)

    @property
    def consistent(self) -> bool:
        return not self.issues

    def to_dict(self) -> Dict[str, Any]:
        return {
            'environments': self.environments,
            'versions': [t.to_dict() for t in self.versions],
            'states': [t.to_dict() for t in self.states],
            'consistent': self.consistent,
            'issues': [i.to_dict() for i in self.issues],
        }


def check_consistency(tags: List[Tag]) -> List[ConsistencyIssue]:
    """
    Find version tags sharing a commit and malformed governed tags.

    Issues are reported only; nothing is blocked.
    """
    issues: List[ConsistencyIssue] = []

    by_commit = defaultdict(list)
    for tag in tags:
        if tag.type == TagType.VERSION and tag.commit:
            by_commit[tag.commit].append(tag.name)

    for commit, names in by_commit.items():
        if len(names) < 2:
            continue
        ordered = [str(v) for v in sort_versions(names)]
        issues.append(ConsistencyIssue(
            rule='shared_commit',
            tags=ordered,
            message=f"Version tags {', '.join(ordered)} point to the same commit {commit[:7]}",
        ))

    for tag in tags:
        if tag.type == TagType.FEATURE:
            issues.append(ConsistencyIssue(
                rule='feature_tag',
                tags=[tag.name],
                message=f"Feature branch tag '{tag.name}' exists; it cannot be pushed",
            ))
        elif tag.type == TagType.STATE and not is_valid(tag.name, tag.type):
            issues.append(ConsistencyIssue(
                rule='invalid_tag',
                tags=[tag.name],
                message=f"State tag '{tag.name}' does not follow recommended patterns",
            ))

    for issue in issues:
        logger.warning(issue.message)
    return issues


def tag_status(tags: List[Tag], recent: int = DEFAULT_RECENT) -> TagStatus:
    """
    Summarize a tag listing.

    Args:
        tags: Tags with commits, as returned by GitClient.list_tags()
        recent: How many version and state tags to include

    Returns:
        TagStatus with environments in fixed order (None when absent),
        versions newest first and state tags in listing order
    """
    by_name = {t.name: t for t in tags}
    environments = {
        env: (by_name[env].commit if env in by_name else None)
        for env in ENVIRONMENTS
    }

    versions = [t for t in tags if t.type == TagType.VERSION]
    versions.sort(key=lambda t: parse(t.name), reverse=True)
    states = [t for t in tags if t.type == TagType.STATE]

    return TagStatus(
        environments=environments,
        versions=versions[:recent],
        states=states[:recent],
        issues=check_consistency(tags),
    )


class StatusService:
    """
    Service that reports tag status for one repository.

    Example:
        status = StatusService(GitClient(".")).status(recent=3)
        for issue in status.issues:
            print(issue.message)
    """

    def __init__(self, git_client: Optional[GitClient] = None):
        self.git = git_client or GitClient()

    def status(self, recent: int = DEFAULT_RECENT) -> TagStatus:
        tags = self.git.list_tags()
        logger.debug(f"Summarizing {len(tags)} tag(s)")
        return tag_status(tags, recent=recent)
