"""
In-memory stand-in for GitClient.

Holds local tags as {name: commit}, an optional remote tag listing and
records every mutating call so tests can assert on what would have
reached git.
"""

import fnmatch
from typing import Dict, Iterable, List, Optional

from tagguard.domain.tag import Tag
from tagguard.errors import NotFoundError, RepositoryError, TagExistsError
from tagguard.infra.git_client import PushResult

HEAD = "feedbee"


class FakeGitClient:
    """Fake git client with the same surface as tagguard.infra.GitClient."""

    def __init__(
        self,
        tags: Optional[Dict[str, str]] = None,
        commits: Iterable[str] = (),
        remote: Optional[Dict[str, str]] = None,
        head: str = HEAD,
        objects: Optional[Dict[str, str]] = None,
        push_rejects: Optional[Dict[str, str]] = None,
        race: Optional[Dict[str, str]] = None,
    ):
        """
        Args:
            tags: Local tags {name: commit}
            commits: Known commit ids
            remote: Remote tags {name: commit}; None makes remote_tags fail
            head: Commit HEAD resolves to
            objects: Annotated tag object ids {object: commit}
            push_rejects: Tag names the remote rejects {name: reason}
            race: Tags another writer creates just before our create
        """
        self.tags = dict(tags or {})
        self.head = head
        self.commits = set(commits) | set(self.tags.values()) | {head}
        self.remote = None if remote is None else dict(remote)
        self.objects = dict(objects or {})
        self.push_rejects = dict(push_rejects or {})
        self.race = dict(race or {})

        self.created: List[tuple] = []
        self.deleted: List[str] = []
        self.pushes: List[tuple] = []
        self.messages: Dict[str, str] = {}

    @property
    def mutations(self) -> int:
        return len(self.created) + len(self.deleted) + len(self.pushes)

    def is_git_repo(self) -> bool:
        return True

    def list_tags(self, pattern: Optional[str] = None) -> List[Tag]:
        names = sorted(self.tags)
        if pattern:
            names = [n for n in names if fnmatch.fnmatchcase(n, pattern)]
        return [Tag.from_name(n, commit=self.tags[n]) for n in names]

    def resolve_tag(self, name: str) -> str:
        if name not in self.tags:
            raise NotFoundError(f"Tag not found: {name}", ref=name)
        return self.tags[name]

    def resolve_commit(self, rev: str) -> str:
        if rev == "HEAD":
            return self.head
        if rev in self.objects:
            return self.objects[rev]
        if rev in self.commits:
            return rev
        if rev in self.tags:
            return self.tags[rev]
        raise NotFoundError(f"Commit not found: {rev}", ref=rev)

    def create_tag(self, name: str, commit: str, annotated: bool = True,
                   message: Optional[str] = None) -> None:
        if name in self.race:
            self.tags[name] = self.race.pop(name)
            raise TagExistsError(f"Tag already exists: {name}", operation="create_tag",
                                 tag=name, commit=commit)
        if name in self.tags:
            raise TagExistsError(f"Tag already exists: {name}", operation="create_tag",
                                 tag=name, commit=commit)
        self.tags[name] = commit
        self.created.append((name, commit))
        self.messages[name] = message

    def delete_tag(self, name: str) -> None:
        if name not in self.tags:
            raise NotFoundError(f"Tag not found: {name}", ref=name)
        del self.tags[name]
        self.deleted.append(name)

    def push_tags(self, names: List[str], remote: str = "origin", force: bool = False) -> PushResult:
        self.pushes.append((list(names), remote, force))
        result = PushResult()
        for name in names:
            if name in self.push_rejects:
                result.rejected[name] = self.push_rejects[name]
            else:
                result.pushed.append(name)
                if self.remote is not None:
                    self.remote[name] = self.tags[name]
        return result

    def fetch_tags(self, remote: str = "origin", force: bool = False) -> None:
        if self.remote is None:
            raise RepositoryError(f"Failed to fetch tags from {remote}", operation="fetch_tags")
        self.tags.update(self.remote)

    def remote_tags(self, remote: str = "origin") -> Dict[str, str]:
        if self.remote is None:
            raise RepositoryError(f"Failed to list tags on {remote}", operation="remote_tags")
        return dict(self.remote)
