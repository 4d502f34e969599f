"""
High-level Python API for tagguard.

Two entry points:

- invoke(): the structured {operation: assign|protect, ...} interface
  used by CI steps and git hooks; it never raises for governance
  failures and always returns a result dict plus an exit code.
- TagGuard: a small object API over one repository.

Example:
    import tagguard

    # Structured invocation
    outcome = tagguard.invoke({
        "operation": "assign",
        "type": "environment",
        "environment": "production",
        "commit": "abc1234",
    })
    print(outcome.result["status"], outcome.exit_code)

    # Push check
    outcome = tagguard.invoke({"operation": "protect"},
                              refs=["refs/tags/feature/x"])
    print(outcome.result["violating_tags"])

    # Object API
    tg = tagguard.TagGuard(repo=".")
    for tag in tg.tags(tag_type="version"):
        print(tag.name, tag.commit)
    print(tg.next_version("minor").next)
    print(tg.status().consistent)
"""

import logging
import time
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from .config import GovernanceSettings, load_config
from .domain.request import TagAssignmentRequest
from .domain.result import AssignmentResult, ProtectionResult, PushRef
from .domain.tag import Tag, TagType, filter_tags
from .domain.version import VersionSuggestion, is_version, suggest_next
from .errors import ProtectionViolation
from .exit_codes import CommandError, USAGE_ERROR
from .infra.git_client import GitClient
from .services import AssignmentService, ProtectionService, StatusService, TagStatus, parse_push_refs

logger = logging.getLogger(__name__)

OPERATIONS = ('assign', 'protect')

RefLike = Union[str, PushRef]


@dataclass
class Invocation:
    """Outcome of one structured invocation."""
    result: Dict[str, Any]
    exit_code: int

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


def _push_refs(refs: Union[RefLike, Iterable[RefLike]]) -> List[PushRef]:
    # A lone string is one ref, not a sequence of characters
    if isinstance(refs, (str, PushRef)):
        refs = [refs]
    result = []
    for ref in refs:
        if isinstance(ref, PushRef):
            result.append(ref)
        else:
            result.extend(parse_push_refs([ref]))
    return result


def invoke(
    payload: Dict[str, Any],
    refs: Optional[Iterable[RefLike]] = None,
    config: Optional[Dict[str, Any]] = None,
    git_client: Optional[GitClient] = None,
    repo: str = ".",
    sleep: Callable[[float], None] = time.sleep,
    existing: Optional[Dict[str, str]] = None,
) -> Invocation:
    """
    Run one assign or protect operation.

    Args:
        payload: {operation, type, version, environment, state, subproject,
                  commit, force, push, mode, protection_mode, allow_override,
                  remote, refs}
        refs: Pushed tag references for protect (payload "refs" if None)
        config: Configuration dict (loaded from file if None)
        git_client: Git client (GitClient(repo) if None)
        repo: Repository path used when git_client is None
        sleep: Sleep function used by TIMEOUT mode
        existing: Known remote tags {name: commit} for protect

    Returns:
        Invocation whose result always has "status" and "details";
        protect results also carry "violating_tags"
    """
    operation = str(payload.get('operation') or '').strip().lower()

    try:
        if operation not in OPERATIONS:
            raise CommandError(
                f"Unknown operation: {operation or '(none)'}. Must be one of: {', '.join(OPERATIONS)}",
                USAGE_ERROR,
            )

        config = config if config is not None else load_config()
        settings = GovernanceSettings.from_config(
            config,
            feature=operation,
            behavior=payload.get('mode'),
            protection=payload.get('protection_mode'),
            allow_override=payload.get('allow_override'),
        )
        if payload.get('remote'):
            settings = replace(settings, remote=str(payload['remote']))
        git = git_client or GitClient(repo, timeout=settings.git_timeout)

        if operation == 'assign':
            request = TagAssignmentRequest.from_dict(payload)
            result = AssignmentService(settings, git_client=git, sleep=sleep).assign(request)
        else:
            if refs is None:
                refs = payload.get('refs') or []
            result = ProtectionService(settings, git_client=git, sleep=sleep).check(
                _push_refs(refs), existing=existing
            )

    except CommandError as e:
        logger.error(e.message)
        data = {
            'status': 'error',
            'details': e.message,
            'error': e.kind,
            'exit_code': e.exit_code,
        }
        if operation == 'protect':
            data['violating_tags'] = []
        return Invocation(result=data, exit_code=e.exit_code)

    data = result.to_dict()
    if isinstance(result, ProtectionResult):
        data.setdefault('violating_tags', result.violating_tags)
    return Invocation(result=data, exit_code=result.exit_code)


class TagGuard:
    """
    High-level API for one repository.

    Example:
        tg = TagGuard(repo="/path/to/repo")
        result = tg.assign("version", version="v2.0.0", commit="abc1234")
        check = tg.protect(["refs/tags/v2.0.0"])
    """

    def __init__(
        self,
        repo: str = ".",
        config: Optional[Dict[str, Any]] = None,
        git_client: Optional[GitClient] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize TagGuard.

        Args:
            repo: Repository path
            config: Full config dict (loaded from file if None)
            git_client: Git client (GitClient(repo) if None)
            sleep: Sleep function used by TIMEOUT mode
        """
        self._config = config if config is not None else load_config()
        timeout = int(self._config.get('git', {}).get('timeout_seconds', 60) or 60)
        self._git = git_client or GitClient(repo, timeout=timeout)
        self._sleep = sleep

    @property
    def config(self) -> Dict[str, Any]:
        """Access the configuration."""
        return self._config

    @property
    def git(self) -> GitClient:
        """Access the underlying git client."""
        return self._git

    def assign(
        self,
        tag_type: str,
        mode: Optional[str] = None,
        **fields,
    ) -> AssignmentResult:
        """
        Create or move one tag.

        Args:
            tag_type: "version", "environment" or "state"
            mode: BehaviorMode override for this call
            **fields: version, environment, state, subproject, commit,
                      force, push
        """
        settings = GovernanceSettings.from_config(self._config, feature='assign', behavior=mode)
        request = TagAssignmentRequest.from_dict(dict(fields, type=tag_type))
        return AssignmentService(settings, git_client=self._git, sleep=self._sleep).assign(request)

    def protect(
        self,
        refs: Iterable[RefLike],
        protection_mode: Optional[str] = None,
        mode: Optional[str] = None,
        strict: bool = False,
        allow_override: Optional[bool] = None,
    ) -> ProtectionResult:
        """
        Check the tag references of a push.

        allow_override lets ENFORCE violations through (logged); None
        takes protection.allow_override from the config.

        Raises:
            ProtectionViolation: if strict and the push would be blocked
        """
        settings = GovernanceSettings.from_config(
            self._config, feature='protect', behavior=mode, protection=protection_mode,
            allow_override=allow_override,
        )
        service = ProtectionService(settings, git_client=self._git, sleep=self._sleep)
        result = service.check(_push_refs(refs))
        if strict and result.blocked:
            raise ProtectionViolation(result.details, tags=result.violating_tags)
        return result

    def tags(
        self,
        pattern: Optional[str] = None,
        tag_type: Optional[str] = None,
        subproject: Optional[str] = None,
    ) -> List[Tag]:
        """List local tags, optionally filtered by glob, type and subproject."""
        wanted = TagType.parse(tag_type) if tag_type else None
        return filter_tags(self._git.list_tags(pattern), wanted, subproject)

    def next_version(self, kind: str = 'patch') -> VersionSuggestion:
        """
        Suggest the next version from the repository's version tags.

        Raises:
            NotFoundError: if the repository has no version tags
        """
        names = [tag.name for tag in self._git.list_tags('v*') if is_version(tag.name)]
        return suggest_next(names, kind)

    def status(self, recent: int = 5) -> TagStatus:
        """Environment tags, the latest version and state tags, and consistency issues."""
        return StatusService(self._git).status(recent=recent)


def create(repo: str = ".", **kwargs) -> TagGuard:
    """
    Create a TagGuard instance.

    Convenience function for:
        tg = tagguard.create(repo="/path/to/repo")
    """
    return TagGuard(repo=repo, **kwargs)
