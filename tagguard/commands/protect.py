"""
Handles the 'protect' command: check tag references before a push.

Usable directly as a git pre-push hook (see `tagguard hook install`):
git passes the remote name as the first argument and one line per
pushed ref on stdin.
"""

import sys
import click

from .. import api
from ..cli_utils import standard_command, add_common_options
from ..output import emit_protection, err_console
from ..services import parse_pre_push_lines, parse_push_refs


@click.command('protect')
@click.argument('refs', nargs=-1)
@click.option('--stdin', 'from_stdin', is_flag=True,
              help='Read pre-push lines ("<local ref> <sha> <remote ref> <sha>") from stdin')
@click.option('--remote', default=None, help='Remote being pushed to (default: from config)')
@click.option('--allow-override', is_flag=True,
              help='Emergency admin bypass: allow a push ENFORCE would block (logged)')
@add_common_options('protection_mode', 'mode', 'repo', 'pretty')
@standard_command
def protect_cmd(refs, from_stdin, remote, allow_override, protection_mode, mode, repo, pretty):
    """Check pushed tags against protection policy.

    REFS: tag refs being pushed (refs/tags/NAME, SRC:DST refspecs or
    plain tag names)

    \b
    - feature/ and hotfix/ tags are always rejected
    - environment tags are always allowed
    - existing version and state tags may not move or be deleted

    Exit code 69 means the push must be blocked.

    Examples:

    \b
        tagguard protect refs/tags/v1.2.0 refs/tags/production
        tagguard protect feature/login --protection-mode WARN
        tagguard protect --stdin --remote origin   # from a pre-push hook
        tagguard protect v1.2.0 --allow-override   # emergency admin push
    """
    push_refs = parse_push_refs(refs)
    if from_stdin:
        push_refs.extend(parse_pre_push_lines(sys.stdin))

    payload = {
        'operation': 'protect',
        'mode': mode,
        'protection_mode': protection_mode,
        'remote': remote,
        # Unset defers to protection.allow_override in the config
        'allow_override': True if allow_override else None,
    }
    outcome = api.invoke(payload, refs=push_refs, repo=repo)
    emit_protection(outcome.result, pretty=pretty)
    if outcome.result.get("status") == "blocked" and not pretty:
        err_console.print(f"[red]{outcome.result.get('details', '')}[/red]")
        err_console.print("[dim]Use --protection-mode WARN to allow the push with warnings, "
                          "or --allow-override for an emergency admin push.[/dim]")
    return outcome.exit_code
