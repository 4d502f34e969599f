"""
Handles the 'hook' command group: install tagguard as a pre-push hook.
"""

import os
import stat
import sys
import click
from typing import Optional

from ..infra.git_client import GitClient
from ..cli_utils import standard_command
from ..exit_codes import CommandError, REPOSITORY_ERROR, GENERAL_ERROR
from ..output import emit_success

HOOK_MARKER = "# tagguard pre-push hook"


def hook_script(python: Optional[str] = None) -> str:
    """Pre-push hook body; git passes the remote name as $1 and refs on stdin."""
    python = python or sys.executable
    return (
        "#!/bin/sh\n"
        f"{HOOK_MARKER}\n"
        f'exec "{python}" -m tagguard protect --stdin --remote "$1"\n'
    )


@click.group('hook')
def hook_cmd():
    """Manage the git pre-push hook."""
    pass


@hook_cmd.command('install')
@click.option('--repo', default='.', show_default=True, type=click.Path(file_okay=False),
              help='Repository to install the hook into')
@click.option('--overwrite', is_flag=True, help='Replace an existing pre-push hook')
@click.option('--pretty', is_flag=True, help='Human-readable output')
@standard_command
def install_hook(repo, overwrite, pretty):
    """Install a pre-push hook that runs `tagguard protect`.

    Refuses to replace a pre-push hook that tagguard did not write
    unless --overwrite is given.
    """
    git = GitClient(repo)
    if not git.is_git_repo():
        raise CommandError(f"Not a git repository: {repo}", REPOSITORY_ERROR)

    hooks = git.hooks_dir()
    hooks.mkdir(parents=True, exist_ok=True)
    path = hooks / 'pre-push'

    if path.exists() and not overwrite:
        if HOOK_MARKER not in path.read_text(errors='replace'):
            raise CommandError(
                f"A pre-push hook already exists at {path}; use --overwrite to replace it",
                GENERAL_ERROR,
            )

    path.write_text(hook_script())
    mode = os.stat(path).st_mode
    os.chmod(path, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)

    emit_success(f"Installed pre-push hook at {path}", data={'path': str(path)}, pretty=pretty)
