"""
Tests for the tagguard command line.

Git access is replaced by patching tagguard.api.GitClient with the
in-memory fake; every command prints JSON on stdout.
"""

import json
import os
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from fakes import FakeGitClient
from tagguard import __version__
from tagguard.cli import cli
from tagguard.commands.hook import HOOK_MARKER, hook_script
from tagguard.exit_codes import (
    CONFLICT,
    GENERAL_ERROR,
    PARSE_ERROR,
    PROTECTION_VIOLATION,
    REPOSITORY_ERROR,
    VALIDATION_ERROR,
)

ZERO = "0" * 40


def last_json(result):
    lines = [line for line in result.stdout.splitlines() if line.startswith('{')]
    return json.loads(lines[-1])


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def fake_git():
    git = FakeGitClient(tags={'v1.0.0': 'aaa1111', 'production': 'aaa1111'},
                        commits=['abc123', 'bbb2222'],
                        remote={'v1.0.0': 'aaa1111', 'production': 'aaa1111'})
    with patch('tagguard.api.GitClient', return_value=git):
        yield git


class TestTopLevel:

    def test_version_option(self, runner):
        result = runner.invoke(cli, ['--version'])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_lists_commands(self, runner):
        result = runner.invoke(cli, ['--help'])
        assert result.exit_code == 0
        for name in ('assign', 'protect', 'version', 'tag', 'hook', 'config'):
            assert name in result.output


class TestAssignCommand:

    def test_create(self, runner, fake_git):
        result = runner.invoke(cli, ['assign', '--type', 'version', '--version', 'v2.0.0',
                                     '--commit', 'abc123'])

        assert result.exit_code == 0
        data = last_json(result)
        assert data['status'] == 'created'
        assert data['tag'] == 'v2.0.0'
        assert fake_git.tags['v2.0.0'] == 'abc123'

    def test_refused(self, runner, fake_git):
        result = runner.invoke(cli, ['assign', '--type', 'version', '--version', 'v1.0.0',
                                     '--commit', 'abc123'])

        assert result.exit_code == CONFLICT
        assert last_json(result)['status'] == 'refused'
        assert fake_git.tags['v1.0.0'] == 'aaa1111'

    def test_force_move(self, runner, fake_git):
        result = runner.invoke(cli, ['assign', '--type', 'version', '--version', 'v1.0.0',
                                     '--commit', 'abc123', '--force'])

        assert result.exit_code == 0
        data = last_json(result)
        assert data['status'] == 'moved'
        assert data['forced'] is True
        assert data['previous_commit'] == 'aaa1111'

    def test_deploy_environment(self, runner, fake_git):
        result = runner.invoke(cli, ['assign', '--type', 'environment', '--environment', 'production',
                                     '--commit', 'abc123', '--push'])

        assert result.exit_code == 0
        assert last_json(result)['pushed'] == ['production']
        assert fake_git.remote['production'] == 'abc123'

    def test_dry_run_mode(self, runner, fake_git):
        result = runner.invoke(cli, ['assign', '--type', 'state', '--version', 'v1.0.0',
                                     '--state', 'stable', '--mode', 'dry_run'])

        assert result.exit_code == 0
        data = last_json(result)
        assert data['tag'] == 'v1.0.0-stable'
        assert data['dry_run'] is True
        assert fake_git.mutations == 0

    def test_malformed_version(self, runner, fake_git):
        result = runner.invoke(cli, ['assign', '--type', 'version', '--version', '2.0'])

        assert result.exit_code == PARSE_ERROR
        assert last_json(result)['status'] == 'error'

    def test_type_is_required(self, runner):
        result = runner.invoke(cli, ['assign'])
        assert result.exit_code == 2


class TestProtectCommand:

    def test_feature_tag_blocked(self, runner, fake_git):
        result = runner.invoke(cli, ['protect', 'refs/tags/feature/x', 'refs/tags/v2.0.0'])

        assert result.exit_code == PROTECTION_VIOLATION
        data = last_json(result)
        assert data['status'] == 'blocked'
        assert data['violating_tags'] == ['feature/x']

    def test_warn_mode(self, runner, fake_git):
        result = runner.invoke(cli, ['protect', 'feature/x', '--protection-mode', 'warn'])

        assert result.exit_code == 0
        assert last_json(result)['status'] == 'warned'

    def test_pre_push_stdin(self, runner, fake_git):
        stdin = (
            f"refs/tags/v1.0.0 bbb2222 refs/tags/v1.0.0 aaa1111\n"
            f"refs/tags/production bbb2222 refs/tags/production aaa1111\n"
            f"(delete) {ZERO} refs/tags/v0.9.0 {ZERO}\n"
        )
        result = runner.invoke(cli, ['protect', '--stdin', '--remote', 'origin'], input=stdin)

        assert result.exit_code == PROTECTION_VIOLATION
        data = last_json(result)
        assert data['violating_tags'] == ['v1.0.0']
        assert data['checked'] == ['v1.0.0', 'production', 'v0.9.0']

    def test_no_tags(self, runner, fake_git):
        result = runner.invoke(cli, ['protect', 'refs/heads/main'])

        assert result.exit_code == 0
        assert last_json(result)['details'] == "No tags in this push"

    def test_allow_override(self, runner, fake_git):
        result = runner.invoke(cli, ['protect', 'refs/tags/feature/x', '--allow-override'])

        assert result.exit_code == 0
        data = last_json(result)
        assert data['overridden'] is True
        assert data['violating_tags'] == ['feature/x']

    def test_blocked_hint_mentions_override(self, runner, fake_git):
        result = runner.invoke(cli, ['protect', 'feature/x'])

        assert result.exit_code == PROTECTION_VIOLATION
        assert '--allow-override' in result.output

    def test_pretty_output(self, runner, fake_git):
        result = runner.invoke(cli, ['protect', 'feature/x', '--pretty'])

        assert result.exit_code == PROTECTION_VIOLATION
        assert 'BLOCKED' in result.stdout
        assert 'feature/x' in result.stdout


class TestVersionCommands:

    def test_parse(self, runner):
        result = runner.invoke(cli, ['version', 'parse', 'v1.2.3-rc.1+build.5'])

        assert result.exit_code == 0
        data = last_json(result)
        assert data['major'] == 1
        assert data['prerelease'] == 'rc.1'
        assert data['build'] == 'build.5'

    def test_parse_invalid(self, runner):
        result = runner.invoke(cli, ['version', 'parse', '1.2.3'])

        assert result.exit_code == PARSE_ERROR
        assert last_json(result)['type'] == 'parse_error'

    @pytest.mark.parametrize('a, b, expected', [
        ('v2.0.0', 'v1.9.9', 1),
        ('v1.2.3-alpha.2', 'v1.2.3-alpha.1', 1),
        ('v1.0.0+a', 'v1.0.0+b', 0),
        ('v1.0.0-rc.1', 'v1.0.0', -1),
    ])
    def test_compare(self, runner, a, b, expected):
        result = runner.invoke(cli, ['version', 'compare', a, b])

        assert result.exit_code == 0
        assert last_json(result)['result'] == expected

    def test_increment(self, runner):
        result = runner.invoke(cli, ['version', 'increment', 'v1.2.3-rc.1'])
        assert last_json(result)['next'] == 'v1.2.3-rc.2'

        result = runner.invoke(cli, ['version', 'increment', 'v1.2.3', '-k', 'major'])
        assert last_json(result)['next'] == 'v2.0.0'

    def test_next_from_arguments(self, runner):
        result = runner.invoke(cli, ['version', 'next', 'v1.0.0', 'v1.1.0', 'v1.2.0-rc.1', '-k', 'minor'])

        assert result.exit_code == 0
        data = last_json(result)
        assert data['current'] == 'v1.1.0'
        assert data['next'] == 'v1.2.0'

    def test_next_only_prereleases(self, runner):
        result = runner.invoke(cli, ['version', 'next', 'v1.0.0-rc.1'])

        data = last_json(result)
        assert data['flagged'] is True
        assert data['next'] is None

    def test_latest_from_repository(self, runner, fake_git):
        fake_git.tags['v1.5.0'] = 'bbb2222'

        result = runner.invoke(cli, ['version', 'latest'])

        assert result.exit_code == 0
        assert last_json(result)['latest'] == 'v1.5.0'


class TestTagCommands:

    def test_classify(self, runner):
        result = runner.invoke(cli, ['tag', 'classify', 'v1.2.3', 'production',
                                     'abc1234-api-stable', 'feature/x', 'random'])

        assert result.exit_code == 0
        rows = [json.loads(line) for line in result.stdout.splitlines() if line.startswith('{')]
        assert [r['type'] for r in rows] == ['version', 'environment', 'state', 'feature', 'unknown']
        assert rows[1]['movable'] is True
        assert rows[0]['immutable'] is True

    def test_validate(self, runner):
        result = runner.invoke(cli, ['tag', 'validate', 'staging'])

        assert result.exit_code == 0
        assert last_json(result) == {'name': 'staging', 'type': 'environment', 'valid': True}

    def test_validate_rejects(self, runner):
        result = runner.invoke(cli, ['tag', 'validate', 'qa', '-t', 'environment'])

        assert result.exit_code == VALIDATION_ERROR
        data = last_json(result)
        assert data['type'] == 'validation_error'
        assert 'qa' in data['error']

    def test_list(self, runner, fake_git):
        result = runner.invoke(cli, ['tag', 'list', '-t', 'version'])

        assert result.exit_code == 0
        rows = [json.loads(line) for line in result.stdout.splitlines() if line.startswith('{')]
        assert [r['name'] for r in rows] == ['v1.0.0']

    def test_status(self, runner, fake_git):
        result = runner.invoke(cli, ['tag', 'status'])

        assert result.exit_code == 0
        data = last_json(result)
        assert data['environments']['production'] == 'aaa1111'
        assert data['environments']['staging'] is None
        assert [v['name'] for v in data['versions']] == ['v1.0.0']
        assert data['consistent'] is True

    def test_status_strict(self, runner, fake_git):
        fake_git.tags['v1.0.1'] = 'aaa1111'

        result = runner.invoke(cli, ['tag', 'status', '--strict'])

        assert result.exit_code == VALIDATION_ERROR
        assert last_json(result)['issues'][0]['rule'] == 'shared_commit'

    def test_status_pretty(self, runner, fake_git):
        result = runner.invoke(cli, ['tag', 'status', '--pretty'])

        assert result.exit_code == 0
        assert 'Environment tags' in result.stdout
        assert 'No consistency issues' in result.stdout


class TestHookCommands:

    def test_hook_script(self):
        script = hook_script('/usr/bin/python3')
        assert script.startswith('#!/bin/sh\n')
        assert HOOK_MARKER in script
        assert '"/usr/bin/python3" -m tagguard protect --stdin --remote "$1"' in script

    @pytest.fixture
    def hooks(self, tmp_path):
        client = MagicMock()
        client.is_git_repo.return_value = True
        client.hooks_dir.return_value = tmp_path / 'hooks'
        with patch('tagguard.commands.hook.GitClient', return_value=client):
            yield tmp_path / 'hooks'

    def test_install(self, runner, hooks):
        result = runner.invoke(cli, ['hook', 'install'])

        assert result.exit_code == 0
        path = hooks / 'pre-push'
        assert HOOK_MARKER in path.read_text()
        assert os.access(path, os.X_OK)
        assert last_json(result)['data']['path'] == str(path)

    def test_reinstall_own_hook(self, runner, hooks):
        runner.invoke(cli, ['hook', 'install'])
        result = runner.invoke(cli, ['hook', 'install'])
        assert result.exit_code == 0

    def test_foreign_hook(self, runner, hooks):
        hooks.mkdir()
        (hooks / 'pre-push').write_text('#!/bin/sh\nexit 0\n')

        result = runner.invoke(cli, ['hook', 'install'])
        assert result.exit_code == GENERAL_ERROR
        assert HOOK_MARKER not in (hooks / 'pre-push').read_text()

        result = runner.invoke(cli, ['hook', 'install', '--overwrite'])
        assert result.exit_code == 0
        assert HOOK_MARKER in (hooks / 'pre-push').read_text()

    def test_not_a_repository(self, runner):
        client = MagicMock()
        client.is_git_repo.return_value = False
        with patch('tagguard.commands.hook.GitClient', return_value=client):
            result = runner.invoke(cli, ['hook', 'install'])

        assert result.exit_code == REPOSITORY_ERROR


class TestConfigCommands:

    def test_path(self, runner, isolated_config):
        result = runner.invoke(cli, ['config', 'path'])

        data = last_json(result)
        assert data['config_path'] == str(isolated_config / '.tagguard' / 'config.json')
        assert data['exists'] is False

    def test_show(self, runner, monkeypatch):
        monkeypatch.setenv('TAGGUARD_PROTECTION_MODE', 'WARN')

        result = runner.invoke(cli, ['config', 'show'])

        assert result.exit_code == 0
        assert last_json(result)['protection']['mode'] == 'WARN'

    def test_init(self, runner, isolated_config):
        result = runner.invoke(cli, ['config', 'init', '--format', 'toml'])

        assert result.exit_code == 0
        assert (isolated_config / '.tagguard' / 'config.toml').exists()

        result = runner.invoke(cli, ['config', 'init'])
        assert result.exit_code == GENERAL_ERROR

        result = runner.invoke(cli, ['config', 'init', '--force', '--format', 'yaml'])
        assert result.exit_code == 0
        assert (isolated_config / '.tagguard' / 'config.yaml').exists()

    def test_show_bad_config(self, runner, isolated_config):
        (isolated_config / '.tagguard').mkdir()
        (isolated_config / '.tagguard' / 'config.json').write_text('{not json')

        result = runner.invoke(cli, ['config', 'show'])

        assert result.exit_code == 66
        assert last_json(result)['type'] == 'config_error'
