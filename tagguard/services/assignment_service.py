"""
Tag assignment service for tagguard.

Creates or moves one governed tag per request:

    Requested -> Validated -> NotExists -> Created
                           -> Exists -> ConflictCheck -> Refused
                                                      -> Moved
                                                      -> ForceMoved

Version and state tags are immutable and only move with force.
Environment tags move freely; moving one is the "deploy" operation.
Used by `tagguard assign` and the invocation API.
"""

import logging
import time
from typing import Any, Callable, Dict, Optional

from ..config import GovernanceSettings
from ..domain.generator import annotation_message, tag_name_for
from ..domain.modes import BehaviorMode
from ..domain.request import TagAssignmentRequest
from ..domain.result import AssignmentResult, ResultStatus
from ..domain.tag import STATES, STATE_SUBPROJECT_RE, TagType
from ..domain.validation import (
    validate_environment_tag,
    validate_subproject,
    validate_tag,
    validate_version_subproject,
)
from ..errors import (
    ConflictError,
    NotFoundError,
    RepositoryError,
    TagExistsError,
    TagGuardError,
    ValidationError,
)
from ..exit_codes import PARTIAL_SUCCESS
from ..infra.git_client import GitClient
from .behavior import simulate

logger = logging.getLogger(__name__)


def _short(commit: Optional[str]) -> str:
    return (commit or "")[:7]


def validate_request(request: TagAssignmentRequest) -> None:
    """
    Check that a request carries what its tag type needs.

    Raises:
        ValidationError: naming the missing or malformed field
    """
    tag_type = request.tag_type

    if tag_type == TagType.FEATURE:
        raise ValidationError(
            "Feature tags (feature/..., hotfix/...) cannot be created through tag assignment"
        )
    if tag_type not in (TagType.VERSION, TagType.ENVIRONMENT, TagType.STATE):
        raise ValidationError(
            f"Invalid tag type: {tag_type.value}. Must be one of: version, environment, state"
        )

    if request.subproject:
        validate_subproject(request.subproject)

    if tag_type == TagType.VERSION:
        if not request.version:
            raise ValidationError("Version is required for version tag type")
        if request.subproject:
            validate_version_subproject(request.subproject)

    elif tag_type == TagType.ENVIRONMENT:
        if not request.environment:
            raise ValidationError("Environment is required for environment tag type")
        validate_environment_tag(request.environment)
        if request.subproject:
            raise ValidationError(
                f"Environment tag '{request.environment}' cannot carry a subproject"
            )

    elif tag_type == TagType.STATE:
        if not request.state:
            raise ValidationError("State is required for state tag type")
        if request.state not in STATES:
            raise ValidationError(
                f"Invalid state: {request.state}. Must be one of: {', '.join(STATES)}"
            )
        if request.subproject and not STATE_SUBPROJECT_RE.match(request.subproject):
            raise ValidationError(
                f"Invalid subproject '{request.subproject}' for a state tag: "
                f"must start with a letter and contain only letters, digits and '_'"
            )


class AssignmentService:
    """
    Service that creates or moves governed tags.

    At most one assignment per repository is expected to run at a time;
    that is the caller's responsibility. If another writer creates the
    same tag first, the create is treated as hitting an existing tag and
    the conflict rules are applied once more.

    Example:
        service = AssignmentService(settings, git_client=GitClient("."))
        request = TagAssignmentRequest(TagType.ENVIRONMENT,
                                       environment="production",
                                       target_commit="abc1234")
        result = service.assign(request)
        print(result.status.value, result.previous_commit)
    """

    def __init__(
        self,
        settings: Optional[GovernanceSettings] = None,
        git_client: Optional[GitClient] = None,
        config: Optional[Dict[str, Any]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize AssignmentService.

        Args:
            settings: Resolved settings (resolved from config if None)
            git_client: Repository adapter (creates GitClient if None)
            config: Configuration dict used when settings is None
            sleep: Sleep function used by TIMEOUT mode
        """
        self.settings = settings or GovernanceSettings.from_config(config, feature='assign')
        self.git = git_client or GitClient(timeout=self.settings.git_timeout)
        self.sleep = sleep
        self.last_result: Optional[AssignmentResult] = None

    def assign(self, request: TagAssignmentRequest) -> AssignmentResult:
        """
        Create or move the tag a request describes.

        Never raises for governance failures: validation, conflict and
        repository errors come back as a result with a non-zero exit code.
        """
        mode = self.settings.behavior_mode
        simulated = simulate(mode, "tag assignment", self.settings.timeout_delay, self.sleep)

        if simulated:
            result = AssignmentResult(
                status=simulated.status,
                tag_name=tag_name_for(request, request.target_commit),
                tag_type=request.tag_type.value,
                action=mode.value.lower(),
                details=simulated.details,
                exit_code=simulated.exit_code,
            )
        else:
            try:
                result = self._assign(request, dry_run=(mode == BehaviorMode.DRY_RUN))
            except TagGuardError as e:
                result = self._failure(request, e)

        self.last_result = result
        return result

    def _assign(self, request: TagAssignmentRequest, dry_run: bool) -> AssignmentResult:
        validate_request(request)

        commit = self.git.resolve_commit(request.target_commit)
        name = tag_name_for(request, commit)
        validate_tag(name, request.tag_type)

        logger.info(f"Assigning {request.tag_type.value} tag {name} to {_short(commit)}")
        result = self._apply(request, name, commit, dry_run)

        if request.push and not dry_run and result.status in (ResultStatus.CREATED, ResultStatus.MOVED):
            self._push(result, force=(result.status == ResultStatus.MOVED))
        return result

    def _existing_commit(self, name: str) -> Optional[str]:
        try:
            return self.git.resolve_tag(name)
        except NotFoundError:
            return None

    def _apply(
        self,
        request: TagAssignmentRequest,
        name: str,
        commit: str,
        dry_run: bool,
        allow_retry: bool = True,
    ) -> AssignmentResult:
        tag_type = request.tag_type
        existing = self._existing_commit(name)

        if existing is None:
            if dry_run:
                return self._result(ResultStatus.CREATED, request, name, commit, "would_create",
                                    f"Would create {tag_type.value} tag {name} at {_short(commit)}",
                                    dry_run=True)
            try:
                self.git.create_tag(name, commit, annotated=True,
                                    message=self._message(request, name, "Created", commit))
            except TagExistsError:
                if not allow_retry:
                    raise
                logger.warning(f"Tag {name} was created concurrently, re-checking conflict rules")
                return self._apply(request, name, commit, dry_run, allow_retry=False)

            logger.info(f"Created {tag_type.value} tag {name} at {_short(commit)}")
            return self._result(ResultStatus.CREATED, request, name, commit, "create",
                                f"Created {tag_type.value} tag {name} at {_short(commit)}")

        if existing == commit:
            logger.info(f"Tag {name} already points to {_short(commit)}")
            return self._result(ResultStatus.UNCHANGED, request, name, commit, "none",
                                f"{tag_type.value.capitalize()} tag {name} already points to {_short(commit)}",
                                previous=existing, dry_run=dry_run)

        if tag_type.immutable:
            if not request.force:
                raise ConflictError(
                    f"{tag_type.value.capitalize()} tag {name} is immutable: it already points to "
                    f"{_short(existing)}, refusing to move it to {_short(commit)} without force",
                    tag=name,
                    existing_commit=existing,
                    requested_commit=commit,
                )
            logger.warning(f"Force moving existing {tag_type.value} tag: {name}")
            return self._move(request, name, existing, commit, dry_run, forced=True)

        return self._move(request, name, existing, commit, dry_run, forced=False)

    def _move(
        self,
        request: TagAssignmentRequest,
        name: str,
        old_commit: str,
        new_commit: str,
        dry_run: bool,
        forced: bool,
    ) -> AssignmentResult:
        tag_type = request.tag_type
        verb = "force move" if forced else "move"
        details = (f"{tag_type.value.capitalize()} tag {name}: "
                   f"{_short(old_commit)} -> {_short(new_commit)}")

        if dry_run:
            return self._result(ResultStatus.MOVED, request, name, new_commit,
                                f"would_{verb.replace(' ', '_')}", f"Would {verb} {details}",
                                previous=old_commit, forced=forced, dry_run=True)

        logger.info(f"Moving {tag_type.value} tag {name}")
        logger.info(f"  From: {old_commit}")
        logger.info(f"  To: {new_commit}")

        description = "Force moved" if forced else "Moved"
        self.git.delete_tag(name)
        self.git.create_tag(
            name, new_commit, annotated=True,
            message=self._message(request, name, description, new_commit, previous=old_commit),
        )

        return self._result(ResultStatus.MOVED, request, name, new_commit, verb.replace(' ', '_'),
                            f"{description} {details}", previous=old_commit, forced=forced)

    def _push(self, result: AssignmentResult, force: bool) -> None:
        outcome = self.git.push_tags([result.tag_name], remote=self.settings.remote, force=force)
        result.pushed = list(outcome.pushed)
        result.push_rejected = dict(outcome.rejected)
        if outcome.rejected:
            reason = outcome.rejected.get(result.tag_name, "rejected")
            result.details += f"; push to {self.settings.remote} rejected: {reason}"
            result.exit_code = PARTIAL_SUCCESS
        else:
            logger.info(f"Tag {result.tag_name} pushed to {self.settings.remote}")

    @staticmethod
    def _message(request: TagAssignmentRequest, name: str, verb: str,
                 commit: str, previous: Optional[str] = None) -> str:
        tag_type = request.tag_type
        return annotation_message(
            tag_type,
            name,
            f"{verb} {tag_type.value} tag",
            state=request.state if tag_type == TagType.STATE else None,
            version=str(request.version) if request.version and tag_type == TagType.STATE else None,
            commit=commit,
            previous_commit=previous,
        )

    @staticmethod
    def _result(
        status: ResultStatus,
        request: TagAssignmentRequest,
        name: str,
        commit: str,
        action: str,
        details: str,
        previous: Optional[str] = None,
        forced: bool = False,
        dry_run: bool = False,
    ) -> AssignmentResult:
        return AssignmentResult(
            status=status,
            tag_name=name,
            tag_type=request.tag_type.value,
            target_commit=commit,
            previous_commit=previous,
            forced=forced,
            dry_run=dry_run,
            action=action,
            details=details,
        )

    @staticmethod
    def _failure(request: TagAssignmentRequest, error: TagGuardError) -> AssignmentResult:
        refused = isinstance(error, ConflictError)
        if refused:
            logger.error(error.message)
            logger.error("Use force to override")
        else:
            logger.error(f"Tag assignment failed: {error.message}")

        return AssignmentResult(
            status=ResultStatus.REFUSED if refused else ResultStatus.ERROR,
            tag_name=(error.tag or "") if isinstance(error, (ConflictError, RepositoryError)) else "",
            tag_type=request.tag_type.value,
            target_commit=getattr(error, 'requested_commit', None),
            previous_commit=getattr(error, 'existing_commit', None),
            action="refuse" if refused else "error",
            details=error.message,
            error=error.kind,
            exit_code=error.exit_code,
        )
