"""
Handles the 'assign' command: create or move one governed tag.

Designed to run as a CI step; the exit code is the governance outcome:
0 created/moved/unchanged, 67 refused (immutable tag), 65 validation
error, 64 unknown commit, 68 git failure, 71 push partially rejected.
"""

import click

from .. import api
from ..cli_utils import standard_command, add_common_options
from ..output import emit_assignment


@click.command('assign')
@click.option('--type', 'tag_type', required=True,
              type=click.Choice(['version', 'environment', 'state'], case_sensitive=False),
              help='Kind of tag to assign')
@click.option('--version', 'version', default=None, help='Version, e.g. v1.2.3 (version and state tags)')
@click.option('--environment', default=None, help='production, staging or development')
@click.option('--state', default=None, help='testing, stable, unstable, deprecated or maintenance')
@click.option('--subproject', default=None, help='Optional subproject qualifier')
@click.option('--commit', default='HEAD', show_default=True, help='Revision the tag should point at')
@click.option('--force', is_flag=True, help='Allow moving an existing version or state tag')
@click.option('--push', is_flag=True, help='Push the tag to the configured remote afterwards')
@add_common_options('mode', 'repo', 'pretty')
@standard_command
def assign_cmd(tag_type, version, environment, state, subproject, commit, force, push, mode, repo, pretty):
    """Create or move a version, environment or state tag.

    \b
    Version and state tags are immutable: an existing one is only moved
    with --force. Environment tags move freely (a deploy).

    Examples:

    \b
        tagguard assign --type version --version v2.0.0 --commit abc1234
        tagguard assign --type environment --environment production
        tagguard assign --type state --version v1.2.0 --state stable
        tagguard assign --type version --version v1.2.0 --force --push
        tagguard assign --type environment --environment staging --mode DRY_RUN
    """
    payload = {
        'operation': 'assign',
        'type': tag_type,
        'version': version,
        'environment': environment,
        'state': state,
        'subproject': subproject,
        'commit': commit,
        'force': force,
        'push': push,
        'mode': mode,
    }
    outcome = api.invoke(payload, repo=repo)
    emit_assignment(outcome.result, pretty=pretty)
    return outcome.exit_code
