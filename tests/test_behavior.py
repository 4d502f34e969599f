"""Tests for the behavior-mode overlay."""

from unittest.mock import MagicMock

import pytest

from tagguard.domain.modes import BehaviorMode, ProtectionMode
from tagguard.domain.result import ResultStatus
from tagguard.exit_codes import ConfigError, GENERAL_ERROR, SUCCESS, TIMEOUT
from tagguard.services.behavior import simulate


class TestSimulate:

    @pytest.mark.parametrize("mode", [BehaviorMode.EXECUTE, BehaviorMode.DRY_RUN])
    def test_real_modes_run(self, mode):
        assert simulate(mode, "tag assignment") is None

    def test_pass(self):
        outcome = simulate(BehaviorMode.PASS, "tag assignment")
        assert outcome.status == ResultStatus.PASSED
        assert outcome.exit_code == SUCCESS

    def test_fail(self):
        outcome = simulate(BehaviorMode.FAIL, "tag assignment")
        assert outcome.status == ResultStatus.ERROR
        assert outcome.exit_code == GENERAL_ERROR

    def test_skip(self):
        outcome = simulate(BehaviorMode.SKIP, "tag protection")
        assert outcome.status == ResultStatus.SKIPPED
        assert outcome.exit_code == SUCCESS

    def test_timeout_sleeps_configured_delay(self):
        sleep = MagicMock()
        outcome = simulate(BehaviorMode.TIMEOUT, "tag assignment", timeout_delay=2.5, sleep=sleep)
        sleep.assert_called_once_with(2.5)
        assert outcome.status == ResultStatus.TIMEOUT
        assert outcome.exit_code == TIMEOUT


class TestModeParsing:

    def test_case_insensitive(self):
        assert BehaviorMode.parse("dry-run") == BehaviorMode.DRY_RUN
        assert ProtectionMode.parse("warn") == ProtectionMode.WARN

    def test_passthrough(self):
        assert ProtectionMode.parse(ProtectionMode.OFF) == ProtectionMode.OFF

    def test_unknown_mode(self):
        with pytest.raises(ConfigError, match="Invalid BehaviorMode"):
            BehaviorMode.parse("SOMETIMES")
