"""
Git client infrastructure for tagguard.

Provides the narrow surface tag governance needs from git:
list, resolve, create, delete, push and fetch tags.
All git operations go through this client, making them:
- Easy to replace with an in-memory fake for testing
- Consistent in error handling
- Isolated from governance logic
"""

import fnmatch
import subprocess
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from pathlib import Path
import logging

from ..domain.tag import Tag
from ..errors import NotFoundError, RepositoryError, TagExistsError

logger = logging.getLogger(__name__)


@dataclass
class GitResult:
    """Result of one git invocation."""
    stdout: str = ""
    stderr: str = ""
    returncode: int = 0

    @property
    def ok(self) -> bool:
        return self.returncode == 0


@dataclass
class PushResult:
    """
    Per-name outcome of a tag push.

    A remote may accept some tag refs and reject others; rejected
    names map to the reason git reported.
    """
    pushed: List[str] = field(default_factory=list)
    rejected: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.rejected

    @property
    def partial(self) -> bool:
        return bool(self.pushed) and bool(self.rejected)

    def to_dict(self) -> Dict[str, object]:
        return {'pushed': self.pushed, 'rejected': self.rejected}


class GitClient:
    """
    Abstraction over git tag commands for one repository.

    Example:
        client = GitClient("/path/to/repo")
        for tag in client.list_tags("v*"):
            print(tag.name, tag.type.value, tag.commit)
    """

    def __init__(self, path: str = ".", timeout: int = 60):
        """
        Initialize GitClient.

        Args:
            path: Repository working directory
            timeout: Command timeout in seconds (default: 60)
        """
        self.path = str(path)
        self.timeout = timeout

    def _run(self, args: List[str]) -> GitResult:
        """
        Run a git command.

        Args:
            args: Git arguments (e.g., ['tag', '-d', 'v1.0.0'])

        Returns:
            GitResult with stdout, stderr and returncode; returncode is
            -1 when git could not be run or timed out.
        """
        cmd = ['git'] + args
        try:
            result = subprocess.run(
                cmd,
                cwd=self.path,
                capture_output=True,
                text=True,
                timeout=self.timeout
            )
            return GitResult(
                stdout=(result.stdout or "").strip(),
                stderr=(result.stderr or "").strip(),
                returncode=result.returncode,
            )

        except subprocess.TimeoutExpired:
            logger.warning(f"Git command timed out: {' '.join(cmd)}")
            return GitResult(stderr=f"timed out after {self.timeout}s", returncode=-1)
        except OSError as e:
            logger.error(f"Git command failed: {' '.join(cmd)} - {e}")
            return GitResult(stderr=str(e), returncode=-1)

    def is_git_repo(self) -> bool:
        """Check if the client's path is inside a git work tree."""
        result = self._run(['rev-parse', '--is-inside-work-tree'])
        return result.ok and result.stdout == 'true'

    def hooks_dir(self) -> Path:
        """Directory git runs hooks from."""
        result = self._run(['rev-parse', '--git-path', 'hooks'])
        if not result.ok or not result.stdout:
            raise RepositoryError(
                f"Not in a git repository: {self.path}",
                operation="hooks_dir",
                stderr=result.stderr,
            )
        hooks = Path(result.stdout)
        if not hooks.is_absolute():
            hooks = Path(self.path) / hooks
        return hooks

    def list_tags(self, pattern: Optional[str] = None) -> List[Tag]:
        """
        List local tags.

        Args:
            pattern: Optional glob on the tag name (e.g., "v*")

        Returns:
            Tags sorted by name, each with the commit it points at
        """
        result = self._run([
            'for-each-ref',
            '--format=%(refname:strip=2)%09%(objectname)%09%(*objectname)',
            'refs/tags',
        ])
        if not result.ok:
            raise RepositoryError(
                f"Failed to list tags: {result.stderr}",
                operation="list_tags",
                stderr=result.stderr,
            )

        tags = []
        for line in result.stdout.splitlines():
            parts = line.split('\t')
            if len(parts) < 2 or not parts[0]:
                continue

            name = parts[0]
            # Annotated tags peel to the commit in the third column
            commit = parts[2] if len(parts) > 2 and parts[2] else parts[1]

            if pattern and not fnmatch.fnmatchcase(name, pattern):
                continue
            tags.append(Tag.from_name(name, commit=commit))

        return sorted(tags, key=lambda t: t.name)

    def resolve_tag(self, name: str) -> str:
        """
        Get the commit a tag points at.

        Raises:
            NotFoundError: if the tag does not exist
        """
        result = self._run(['rev-parse', '--verify', '--quiet', f'refs/tags/{name}^{{commit}}'])
        if not result.ok or not result.stdout:
            raise NotFoundError(f"Tag not found: {name}", ref=name)
        return result.stdout

    def resolve_commit(self, rev: str) -> str:
        """
        Resolve a revision (sha, branch, HEAD) to a full commit id.

        Raises:
            NotFoundError: if the revision does not name a commit
        """
        result = self._run(['rev-parse', '--verify', '--quiet', f'{rev}^{{commit}}'])
        if not result.ok or not result.stdout:
            raise NotFoundError(f"Commit not found: {rev}", ref=rev)
        return result.stdout

    def create_tag(
        self,
        name: str,
        commit: str,
        annotated: bool = True,
        message: Optional[str] = None,
    ) -> None:
        """
        Create a tag pointing at commit.

        Raises:
            TagExistsError: if git reports the name is already taken
            RepositoryError: on any other failure
        """
        if annotated:
            args = ['tag', '-a', name, commit, '-m', message or f"Tag: {name}"]
        else:
            args = ['tag', name, commit]

        result = self._run(args)
        if result.ok:
            logger.debug(f"Created tag {name} -> {commit}")
            return

        if 'already exists' in result.stderr:
            raise TagExistsError(
                f"Tag already exists: {name}",
                operation="create_tag",
                tag=name,
                commit=commit,
                stderr=result.stderr,
            )
        raise RepositoryError(
            f"Failed to create tag {name} at {commit}: {result.stderr}",
            operation="create_tag",
            tag=name,
            commit=commit,
            stderr=result.stderr,
        )

    def delete_tag(self, name: str) -> None:
        """
        Delete a local tag.

        Raises:
            NotFoundError: if the tag does not exist
            RepositoryError: on any other failure
        """
        result = self._run(['tag', '-d', name])
        if result.ok:
            logger.debug(f"Deleted tag {name}")
            return

        if 'not found' in result.stderr:
            raise NotFoundError(f"Tag not found: {name}", ref=name)
        raise RepositoryError(
            f"Failed to delete tag {name}: {result.stderr}",
            operation="delete_tag",
            tag=name,
            stderr=result.stderr,
        )

    def push_tags(self, names: List[str], remote: str = "origin", force: bool = False) -> PushResult:
        """
        Push tags to a remote.

        Uses --porcelain so each ref's outcome can be reported on its
        own; a partially rejected push is not collapsed to a boolean.
        """
        if not names:
            return PushResult()

        args = ['push', '--porcelain']
        if force:
            args.append('--force')
        args.append(remote)
        args.extend(f'refs/tags/{name}:refs/tags/{name}' for name in names)

        result = self._run(args)
        outcome = parse_porcelain_push(result.stdout)

        for name in names:
            if name in outcome.pushed or name in outcome.rejected:
                continue
            if result.ok:
                outcome.pushed.append(name)
            else:
                outcome.rejected[name] = result.stderr or "push failed"

        for name, reason in outcome.rejected.items():
            logger.warning(f"Remote rejected tag {name}: {reason}")
        return outcome

    def fetch_tags(self, remote: str = "origin", force: bool = False) -> None:
        """
        Fetch tags from a remote.

        Raises:
            RepositoryError: if the fetch fails
        """
        args = ['fetch', remote, '--tags']
        if force:
            args.append('--force')

        result = self._run(args)
        if not result.ok:
            raise RepositoryError(
                f"Failed to fetch tags from {remote}: {result.stderr}",
                operation="fetch_tags",
                stderr=result.stderr,
            )

    def remote_tags(self, remote: str = "origin") -> Dict[str, str]:
        """
        List tags on a remote without fetching them.

        Returns:
            Mapping of tag name to the commit it points at

        Raises:
            RepositoryError: if the remote cannot be listed
        """
        result = self._run(['ls-remote', '--tags', remote])
        if not result.ok:
            raise RepositoryError(
                f"Failed to list tags on {remote}: {result.stderr}",
                operation="remote_tags",
                stderr=result.stderr,
            )
        return parse_ls_remote(result.stdout)


def parse_porcelain_push(output: str) -> PushResult:
    """
    Parse `git push --porcelain` output.

    Ref lines look like "<flag>\\t<from>:<to>\\t<summary>"; flag "!"
    marks a rejected ref.
    """
    outcome = PushResult()
    for line in (output or "").splitlines():
        parts = line.split('\t')
        if len(parts) < 3 or ':' not in parts[1]:
            continue

        flag = parts[0].strip() or ' '
        ref = parts[1].rsplit(':', 1)[1]
        if not ref.startswith('refs/tags/'):
            continue
        name = ref[len('refs/tags/'):]

        if flag == '!':
            outcome.rejected[name] = parts[2].strip()
        else:
            outcome.pushed.append(name)
    return outcome


def parse_ls_remote(output: str) -> Dict[str, str]:
    """Parse `git ls-remote --tags` output into {name: commit}."""
    tags: Dict[str, str] = {}
    peeled: Dict[str, str] = {}
    for line in (output or "").splitlines():
        parts = line.split('\t')
        if len(parts) != 2 or not parts[1].startswith('refs/tags/'):
            continue

        sha, ref = parts
        name = ref[len('refs/tags/'):]
        if name.endswith('^{}'):
            peeled[name[:-3]] = sha
        else:
            tags[name] = sha

    # Annotated tags list the tag object first, then the peeled commit
    tags.update(peeled)
    return tags
