"""
Push-time tag protection for tagguard.

Runs at the push boundary (typically from a git pre-push hook) and
checks every tag reference about to be pushed:

- feature/ and hotfix/ tags are never allowed
- environment tags are movable and always allowed
- version and state tags must not move or disappear once they exist

ProtectionMode decides whether violations block the push (ENFORCE),
are only logged (WARN), or are not checked at all (OFF). Every
violating reference is reported, not just the first.
"""

import logging
import time
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from ..config import GovernanceSettings
from ..domain.modes import BehaviorMode, ProtectionMode
from ..domain.result import (
    ProtectionResult,
    PushRef,
    ResultStatus,
    Violation,
    ViolationRule,
)
from ..domain.tag import TagType, classify, strip_ref
from ..domain.validation import is_valid
from ..errors import NotFoundError, RepositoryError
from ..exit_codes import SUCCESS, PROTECTION_VIOLATION
from ..infra.git_client import GitClient
from .behavior import simulate

logger = logging.getLogger(__name__)


def parse_push_refs(refs: Iterable[str]) -> List[PushRef]:
    """
    Extract tag references from push refspecs.

    Accepts "refs/tags/v1.0.0", "+refs/tags/v1.0.0:refs/tags/v1.0.0",
    "refs/tags/a:refs/tags/b" and bare tag names. Branch refs are
    ignored. The pushed name is the destination of the refspec.
    """
    result = []
    for raw in refs:
        for ref in raw.split():
            ref = ref.lstrip('+')
            if ':' in ref:
                source, destination = ref.split(':', 1)
            else:
                source, destination = ref, ref

            if destination.startswith('refs/') and not destination.startswith('refs/tags/'):
                continue
            name = strip_ref(destination)
            if not name:
                continue

            result.append(PushRef(
                name=name,
                source=strip_ref(source) or None,
                deleted=not source,
            ))
    return result


def parse_pre_push_lines(lines: Iterable[str]) -> List[PushRef]:
    """
    Parse the lines git feeds a pre-push hook on stdin.

    Each line is "<local ref> <local sha> <remote ref> <remote sha>".
    A local sha of all zeros means the remote ref is being deleted.
    """
    result = []
    for line in lines:
        parts = line.split()
        if len(parts) != 4:
            continue

        local_ref, local_sha, remote_ref, _ = parts
        if not remote_ref.startswith('refs/tags/'):
            continue

        deleted = set(local_sha) == {'0'}
        result.append(PushRef(
            name=strip_ref(remote_ref),
            commit=None if deleted else local_sha,
            source=None if deleted else strip_ref(local_ref),
            deleted=deleted,
        ))
    return result


class ProtectionService:
    """
    Service that checks tag references before a push.

    Example:
        service = ProtectionService(settings, git_client=GitClient("."))
        result = service.check(parse_push_refs(["refs/tags/feature/x"]))
        if result.blocked:
            print(result.violating_tags)
    """

    def __init__(
        self,
        settings: Optional[GovernanceSettings] = None,
        git_client: Optional[GitClient] = None,
        config: Optional[Dict[str, Any]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.settings = settings or GovernanceSettings.from_config(config, feature='protect')
        self.git = git_client or GitClient(timeout=self.settings.git_timeout)
        self.sleep = sleep
        self.last_result: Optional[ProtectionResult] = None

    def check(
        self,
        refs: List[PushRef],
        existing: Optional[Dict[str, str]] = None,
    ) -> ProtectionResult:
        """
        Check the tag references of one push.

        Args:
            refs: Tag references being pushed
            existing: Known tags {name: commit}; listed from the remote
                (falling back to local tags) when None

        Returns:
            ProtectionResult; exit_code is non-zero only when the push
            must be blocked or a simulated failure was requested
        """
        protection = self.settings.protection_mode
        behavior = self.settings.behavior_mode
        names = [ref.name for ref in refs]

        simulated = simulate(behavior, "tag protection", self.settings.timeout_delay, self.sleep)
        if simulated:
            result = ProtectionResult(
                status=simulated.status,
                mode=protection.value,
                checked=names,
                details=simulated.details,
                exit_code=simulated.exit_code,
            )
        elif protection == ProtectionMode.OFF:
            logger.info("Tag protection is disabled")
            result = ProtectionResult(
                status=ResultStatus.PASSED,
                mode=protection.value,
                checked=names,
                details="Tag protection is disabled",
            )
        elif not refs:
            logger.info("No tags in this push")
            result = ProtectionResult(
                status=ResultStatus.PASSED,
                mode=protection.value,
                details="No tags in this push",
            )
        else:
            result = self._enforce(refs, existing, protection, dry_run=(behavior == BehaviorMode.DRY_RUN))

        self.last_result = result
        return result

    def _enforce(
        self,
        refs: List[PushRef],
        existing: Optional[Dict[str, str]],
        protection: ProtectionMode,
        dry_run: bool,
    ) -> ProtectionResult:
        logger.info(f"Found {len(refs)} tag(s) to validate")
        skipped = None
        if existing is None:
            existing, skipped = self._existing_tags()

        violations, warnings = self.evaluate(refs, existing)
        if skipped:
            warnings.append(skipped)
        names = [ref.name for ref in refs]
        result = ProtectionResult(
            status=ResultStatus.PASSED,
            mode=protection.value,
            checked=names,
            violations=violations,
            warnings=warnings,
            dry_run=dry_run,
            immutability_checked=skipped is None,
        )

        self._decide(result, protection, dry_run)
        if skipped:
            result.details = f"{result.details} ({skipped})"
        return result

    def _decide(self, result: ProtectionResult, protection: ProtectionMode, dry_run: bool) -> None:
        violations = result.violations
        if not violations:
            result.details = f"All {len(result.checked)} tag(s) passed validation"
            logger.info(result.details)
            return

        summary = ', '.join(result.violating_tags)

        if protection == ProtectionMode.ENFORCE and self.settings.allow_override:
            result.status = ResultStatus.WARNED
            result.overridden = True
            for violation in violations:
                logger.warning(f"PROTECTION OVERRIDE: {violation.message}")
            prefix = "Would allow" if dry_run else "Allowed"
            result.details = f"{prefix} push by protection override despite invalid tags: {summary}"
            logger.warning(f"{result.details}; use the override only for emergency admin operations")
            return

        if protection == ProtectionMode.ENFORCE:
            result.status = ResultStatus.BLOCKED
            if dry_run:
                result.details = f"Would block push due to invalid tags: {summary}"
                logger.info(result.details)
                return

            for violation in violations:
                logger.error(f"PROTECTION ENFORCED: {violation.message}")
            result.details = f"Push blocked due to invalid tags: {summary}"
            result.exit_code = PROTECTION_VIOLATION
            logger.error(f"Tag validation failed with {len(violations)} error(s)")
            return

        result.status = ResultStatus.WARNED
        for violation in violations:
            logger.warning(f"PROTECTION WARNING: {violation.message}")
        result.details = f"Push allowed with warnings for invalid tags: {summary}"
        result.exit_code = SUCCESS

    def evaluate(
        self,
        refs: List[PushRef],
        existing: Dict[str, str],
    ) -> Tuple[List[Violation], List[str]]:
        """
        Find every violation and non-blocking warning in a push.

        Returns:
            (violations, warnings)
        """
        violations: List[Violation] = []
        warnings: List[str] = []

        for ref in refs:
            name = ref.name
            tag_type = classify(name)

            if tag_type == TagType.FEATURE:
                if not ref.deleted:
                    violations.append(Violation(
                        tag=name,
                        tag_type=tag_type.value,
                        rule=ViolationRule.FEATURE_TAG,
                        message=f"Feature branch tag '{name}' is not allowed",
                    ))
                continue

            if tag_type == TagType.ENVIRONMENT:
                logger.debug(f"Environment tag '{name}' is movable")
                continue

            if tag_type == TagType.UNKNOWN:
                if not ref.deleted:
                    warnings.append(f"Tag '{name}' does not follow recommended patterns")
                continue

            violation = self._check_immutable(ref, tag_type, existing.get(name))
            if violation:
                violations.append(violation)
            elif not ref.deleted and not is_valid(name, tag_type):
                warnings.append(f"{tag_type.value.capitalize()} tag '{name}' does not follow recommended patterns")

        for warning in warnings:
            logger.warning(warning)
        return violations, warnings

    def _check_immutable(
        self,
        ref: PushRef,
        tag_type: TagType,
        existing_commit: Optional[str],
    ) -> Optional[Violation]:
        if not existing_commit:
            return None

        label = tag_type.value.capitalize()
        if ref.deleted:
            return Violation(
                tag=ref.name,
                tag_type=tag_type.value,
                rule=ViolationRule.IMMUTABLE_DELETED,
                message=f"{label} tag '{ref.name}' is immutable and cannot be deleted",
            )

        pushed_commit = self._pushed_commit(ref)
        if pushed_commit is None or pushed_commit == existing_commit:
            return None

        return Violation(
            tag=ref.name,
            tag_type=tag_type.value,
            rule=ViolationRule.IMMUTABLE_MOVED,
            message=(f"{label} tag '{ref.name}' already exists and is immutable "
                     f"({existing_commit[:7]} -> {pushed_commit[:7]})"),
        )

    def _pushed_commit(self, ref: PushRef) -> Optional[str]:
        """Commit a pushed ref points at; peels annotated tag objects."""
        try:
            if ref.commit:
                return self.git.resolve_commit(ref.commit)
            return self.git.resolve_tag(ref.source or ref.name)
        except NotFoundError:
            logger.debug(f"Cannot resolve pushed tag '{ref.name}', skipping immutability check")
            return None

    def _existing_tags(self) -> Tuple[Dict[str, str], Optional[str]]:
        """
        Tags already published, plus a note when they could not be listed.

        Local tags still catch deletions, but a pushed tag always matches
        its local commit, so moves go undetected.
        """
        try:
            return self.git.remote_tags(self.settings.remote), None
        except RepositoryError as e:
            note = (f"immutability checks skipped: cannot list tags on {self.settings.remote}, "
                    f"moved version and state tags are not detected")
            logger.warning(f"{note} ({e.message}); checking deletions against local tags only")
            return {tag.name: tag.commit for tag in self.git.list_tags()}, note
