"""
Semantic version utilities: parse, compare, increment, latest, next.

All subcommands print one JSON object per line; errors exit with 70
(malformed version), 65 (bad increment kind) or 64 (nothing to
compare).
"""

import json
import click

from .. import api
from ..domain import version as semver
from ..cli_utils import standard_command, add_common_options
from ..output import emit

KINDS = click.Choice(list(semver.INCREMENT_KINDS), case_sensitive=False)


@click.group('version')
def version_cmd():
    """Semantic version utilities (vMAJOR.MINOR.PATCH[-PRE][+BUILD])."""
    pass


@version_cmd.command('parse')
@click.argument('versions', nargs=-1, required=True)
@add_common_options('pretty')
@standard_command
def parse_version(versions, pretty):
    """Parse versions and show their components."""
    emit([semver.parse(v) for v in versions], pretty=pretty,
         columns=['version', 'major', 'minor', 'patch', 'prerelease', 'build'])


@version_cmd.command('compare')
@click.argument('a')
@click.argument('b')
@standard_command
def compare_versions(a, b):
    """Compare two versions: prints -1, 0 or 1 as "result".

    Build metadata never affects the result.
    """
    result = semver.compare(a, b)
    print(json.dumps({'a': a, 'b': b, 'result': result}))


@version_cmd.command('increment')
@click.argument('version')
@click.option('-k', '--kind', type=KINDS, default='patch', show_default=True,
              help='Which component to increment')
@standard_command
def increment_version(version, kind):
    """Increment a version.

    \b
    v1.2.3 --kind minor     -> v1.3.0
    v1.2.3-rc.1 --kind patch -> v1.2.3-rc.2
    """
    print(json.dumps({'version': version, 'kind': kind, 'next': str(semver.increment(version, kind))}))


@version_cmd.command('latest')
@click.argument('versions', nargs=-1)
@add_common_options('repo')
@standard_command
def latest_version(versions, repo):
    """Show the greatest of VERSIONS (default: the repository's version tags)."""
    if not versions:
        versions = [tag.name for tag in api.TagGuard(repo=repo).tags(tag_type='version')]
    print(json.dumps({'latest': str(semver.latest(versions))}))


@version_cmd.command('next')
@click.argument('versions', nargs=-1)
@click.option('-k', '--kind', type=KINDS, default='patch', show_default=True,
              help='Which component to increment')
@add_common_options('repo')
@standard_command
def next_version(versions, kind, repo):
    """Suggest the next version after the highest stable release.

    Uses VERSIONS when given, otherwise the repository's version tags.
    When only prereleases exist the suggestion is flagged and "next"
    is null.
    """
    if versions:
        suggestion = semver.suggest_next(versions, kind)
    else:
        suggestion = api.TagGuard(repo=repo).next_version(kind)
    print(json.dumps(suggestion.to_dict()))
