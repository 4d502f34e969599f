"""Tests for the push-time protection gate."""

from unittest.mock import MagicMock

import pytest

from fakes import FakeGitClient
from tagguard.config import GovernanceSettings
from tagguard.domain.modes import BehaviorMode, ProtectionMode
from tagguard.domain.result import PushRef, ResultStatus, ViolationRule
from tagguard.exit_codes import GENERAL_ERROR, PROTECTION_VIOLATION, SUCCESS, TIMEOUT
from tagguard.services.protection_service import (
    ProtectionService,
    parse_pre_push_lines,
    parse_push_refs,
)

ZERO = "0" * 40


def make_service(git, protection=ProtectionMode.ENFORCE, mode=BehaviorMode.EXECUTE, sleep=None,
                 allow_override=False):
    settings = GovernanceSettings(behavior_mode=mode, protection_mode=protection, timeout_delay=3,
                                  allow_override=allow_override)
    return ProtectionService(settings, git_client=git, sleep=sleep or MagicMock())


class TestParsePushRefs:
    """Tests for reading tag refs from refspecs."""

    def test_plain_ref(self):
        assert parse_push_refs(["refs/tags/v1.0.0"]) == [PushRef(name="v1.0.0", source="v1.0.0")]

    def test_forced_refspec(self):
        refs = parse_push_refs(["+refs/tags/v1.0.0:refs/tags/v1.0.0"])
        assert refs[0].name == "v1.0.0"
        assert not refs[0].deleted

    def test_renaming_refspec_uses_destination(self):
        ref = parse_push_refs(["refs/tags/a:refs/tags/production"])[0]
        assert ref.name == "production"
        assert ref.source == "a"

    def test_deletion_refspec(self):
        ref = parse_push_refs([":refs/tags/v1.0.0"])[0]
        assert ref.deleted
        assert ref.source is None

    def test_branches_ignored(self):
        assert parse_push_refs(["refs/heads/main", "refs/tags/staging"]) == [
            PushRef(name="staging", source="staging")
        ]

    def test_bare_names(self):
        assert [r.name for r in parse_push_refs(["feature/x", "v1.0.0"])] == ["feature/x", "v1.0.0"]


class TestParsePrePushLines:
    """Tests for the lines git feeds a pre-push hook."""

    def test_tag_update(self):
        lines = [f"refs/tags/v1.0.0 {'a' * 40} refs/tags/v1.0.0 {ZERO}\n"]
        ref = parse_pre_push_lines(lines)[0]
        assert ref.name == "v1.0.0"
        assert ref.commit == "a" * 40
        assert not ref.deleted

    def test_tag_deletion(self):
        lines = [f"(delete) {ZERO} refs/tags/v1.0.0 {'b' * 40}"]
        ref = parse_pre_push_lines(lines)[0]
        assert ref.deleted
        assert ref.commit is None

    def test_branches_and_noise_ignored(self):
        lines = [
            f"refs/heads/main {'a' * 40} refs/heads/main {'b' * 40}",
            "",
            "garbage",
        ]
        assert parse_pre_push_lines(lines) == []


class TestProtectionModes:
    """The feature-tag scenario under each protection mode."""

    def test_enforce_blocks_feature_tag(self):
        service = make_service(FakeGitClient(remote={}), ProtectionMode.ENFORCE)
        result = service.check(parse_push_refs(["refs/tags/feature/x"]))

        assert result.status == ResultStatus.BLOCKED
        assert result.exit_code == PROTECTION_VIOLATION
        assert result.blocked
        assert result.violating_tags == ["feature/x"]
        assert result.violations[0].rule == ViolationRule.FEATURE_TAG

    def test_warn_allows_feature_tag(self, caplog):
        service = make_service(FakeGitClient(remote={}), ProtectionMode.WARN)
        result = service.check(parse_push_refs(["refs/tags/feature/x"]))

        assert result.status == ResultStatus.WARNED
        assert result.exit_code == SUCCESS
        assert result.violating_tags == ["feature/x"]
        assert "PROTECTION WARNING" in caplog.text

    def test_off_passes_silently(self):
        git = FakeGitClient()
        git.remote_tags = MagicMock()
        result = make_service(git, ProtectionMode.OFF).check(parse_push_refs(["refs/tags/feature/x"]))

        assert result.status == ResultStatus.PASSED
        assert result.exit_code == SUCCESS
        assert result.violations == []
        git.remote_tags.assert_not_called()

    def test_no_tags(self):
        result = make_service(FakeGitClient(remote={})).check([])
        assert result.status == ResultStatus.PASSED
        assert result.details == "No tags in this push"


class TestImmutability:
    """Existing version and state tags may not move or disappear."""

    def test_moving_existing_version_is_blocked(self):
        git = FakeGitClient(tags={"v1.2.0": "bbb222"}, remote={"v1.2.0": "aaa111"})
        result = make_service(git).check(parse_push_refs(["+refs/tags/v1.2.0"]))

        assert result.blocked
        violation = result.violations[0]
        assert violation.rule == ViolationRule.IMMUTABLE_MOVED
        assert "already exists and is immutable" in violation.message

    def test_pushing_same_commit_is_fine(self):
        git = FakeGitClient(tags={"v1.2.0": "aaa111"}, remote={"v1.2.0": "aaa111"})
        result = make_service(git).check(parse_push_refs(["refs/tags/v1.2.0"]))
        assert result.status == ResultStatus.PASSED

    def test_new_version_is_fine(self):
        git = FakeGitClient(tags={"v2.0.0": "ccc333"}, remote={"v1.0.0": "aaa111"})
        assert make_service(git).check(parse_push_refs(["refs/tags/v2.0.0"])).exit_code == SUCCESS

    def test_annotated_tag_object_is_peeled(self):
        git = FakeGitClient(remote={"v1.2.0": "aaa111"}, objects={"f" * 40: "aaa111"})
        lines = [f"refs/tags/v1.2.0 {'f' * 40} refs/tags/v1.2.0 {'e' * 40}"]
        result = make_service(git).check(parse_pre_push_lines(lines))
        assert result.status == ResultStatus.PASSED

    def test_deleting_existing_state_tag_is_blocked(self):
        git = FakeGitClient(remote={"abc1234-stable": "abc1234"})
        lines = [f"(delete) {ZERO} refs/tags/abc1234-stable {'a' * 40}"]
        result = make_service(git).check(parse_pre_push_lines(lines))
        assert result.blocked
        assert result.violations[0].rule == ViolationRule.IMMUTABLE_DELETED

    def test_environment_tags_always_move(self):
        git = FakeGitClient(tags={"production": "def5678"}, remote={"production": "abc1234"})
        result = make_service(git).check(parse_push_refs(["+refs/tags/production"]))
        assert result.status == ResultStatus.PASSED

    def test_local_tags_used_when_remote_unavailable(self):
        git = FakeGitClient(tags={"v1.0.0": "aaa111"})
        result = make_service(git).check(parse_push_refs(["refs/tags/v1.0.0"]))
        assert result.status == ResultStatus.PASSED

    def test_skipped_move_check_is_reported(self, caplog):
        git = FakeGitClient(tags={"v1.0.0": "aaa111"})
        result = make_service(git).check(parse_push_refs(["refs/tags/v1.0.0"]))

        assert not result.immutability_checked
        assert "immutability checks skipped" in result.details
        assert any("immutability checks skipped" in w for w in result.warnings)
        assert result.to_dict()["immutability_checked"] is False
        assert "immutability checks skipped" in caplog.text

    def test_reachable_remote_reports_checks_done(self):
        git = FakeGitClient(tags={"v1.0.0": "aaa111"}, remote={"v1.0.0": "aaa111"})
        result = make_service(git).check(parse_push_refs(["refs/tags/v1.0.0"]))

        assert result.immutability_checked
        assert result.warnings == []
        assert "immutability_checked" not in result.to_dict()

    def test_deletion_still_caught_against_local_tags(self):
        git = FakeGitClient(tags={"abc1234-stable": "abc1234"})
        lines = [f"(delete) {ZERO} refs/tags/abc1234-stable {'a' * 40}"]
        result = make_service(git).check(parse_pre_push_lines(lines))

        assert result.blocked
        assert "immutability checks skipped" in result.details

    def test_explicit_existing_map(self):
        git = FakeGitClient(tags={"v1.0.0": "bbb222"})
        result = make_service(git).check(parse_push_refs(["refs/tags/v1.0.0"]), existing={"v1.0.0": "aaa111"})
        assert result.blocked


class TestOverride:
    """The emergency admin override lets ENFORCE violations through."""

    def test_override_allows_and_flags(self, caplog):
        service = make_service(FakeGitClient(remote={}), allow_override=True)
        result = service.check(parse_push_refs(["refs/tags/feature/x"]))

        assert result.status == ResultStatus.WARNED
        assert result.exit_code == SUCCESS
        assert not result.blocked
        assert result.overridden
        assert result.violating_tags == ["feature/x"]
        assert "protection override" in result.details
        assert "PROTECTION OVERRIDE" in caplog.text
        assert result.to_dict()["overridden"] is True

    def test_override_unused_without_violations(self):
        service = make_service(FakeGitClient(remote={}), allow_override=True)
        result = service.check(parse_push_refs(["refs/tags/v1.0.0"]))
        assert result.status == ResultStatus.PASSED
        assert not result.overridden

    def test_override_does_not_apply_to_warn(self):
        service = make_service(FakeGitClient(remote={}), ProtectionMode.WARN, allow_override=True)
        result = service.check(parse_push_refs(["refs/tags/feature/x"]))
        assert result.status == ResultStatus.WARNED
        assert not result.overridden

    def test_override_in_dry_run(self):
        service = make_service(FakeGitClient(remote={}), mode=BehaviorMode.DRY_RUN, allow_override=True)
        result = service.check(parse_push_refs(["refs/tags/feature/x"]))
        assert result.overridden
        assert result.details.startswith("Would allow push by protection override")


class TestReporting:

    def test_all_violations_enumerated(self):
        git = FakeGitClient(tags={"v1.0.0": "bbb222"}, remote={"v1.0.0": "aaa111"})
        refs = parse_push_refs(["refs/tags/feature/a", "refs/tags/v1.0.0", "refs/tags/hotfix/b", "refs/tags/staging"])
        result = make_service(git).check(refs)

        assert result.violating_tags == ["feature/a", "v1.0.0", "hotfix/b"]
        assert result.checked == ["feature/a", "v1.0.0", "hotfix/b", "staging"]

    def test_unknown_tags_only_warn(self):
        result = make_service(FakeGitClient(remote={})).check(parse_push_refs(["refs/tags/nightly"]))
        assert result.status == ResultStatus.PASSED
        assert result.warnings == ["Tag 'nightly' does not follow recommended patterns"]

    def test_malformed_state_tag_warns(self):
        result = make_service(FakeGitClient(remote={})).check(parse_push_refs(["refs/tags/zzzz-stable"]))
        assert result.status == ResultStatus.PASSED
        assert "does not follow recommended patterns" in result.warnings[0]

    def test_to_dict(self):
        result = make_service(FakeGitClient(remote={})).check(parse_push_refs(["refs/tags/feature/x"]))
        data = result.to_dict()
        assert data['status'] == 'blocked'
        assert data['mode'] == 'ENFORCE'
        assert data['violating_tags'] == ['feature/x']
        assert data['violations'][0]['rule'] == 'feature_tag'


class TestBehaviorOverlay:

    def test_dry_run_never_blocks(self):
        result = make_service(FakeGitClient(remote={}), mode=BehaviorMode.DRY_RUN).check(
            parse_push_refs(["refs/tags/feature/x"]))
        assert result.dry_run
        assert result.exit_code == SUCCESS
        assert result.violating_tags == ["feature/x"]
        assert "Would block" in result.details

    def test_fail(self):
        result = make_service(FakeGitClient(), mode=BehaviorMode.FAIL).check([])
        assert result.status == ResultStatus.ERROR
        assert result.exit_code == GENERAL_ERROR

    def test_skip(self):
        result = make_service(FakeGitClient(), mode=BehaviorMode.SKIP).check(
            parse_push_refs(["refs/tags/feature/x"]))
        assert result.status == ResultStatus.SKIPPED
        assert result.exit_code == SUCCESS

    def test_timeout(self):
        sleep = MagicMock()
        result = make_service(FakeGitClient(), mode=BehaviorMode.TIMEOUT, sleep=sleep).check([])
        sleep.assert_called_once_with(3)
        assert result.exit_code == TIMEOUT
