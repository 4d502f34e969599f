"""
Tag inspection commands for tagguard: classify, validate, list and status.
"""

import click

from .. import api
from ..domain.tag import TagType, to_tag
from ..domain.validation import validate_tag
from ..cli_utils import standard_command, add_common_options
from ..exit_codes import VALIDATION_ERROR
from ..output import emit, emit_status

TAG_TYPES = click.Choice([t.value for t in TagType], case_sensitive=False)


@click.group('tag')
def tag_cmd():
    """Inspect tag names and the repository's tags."""
    pass


@tag_cmd.command('classify')
@click.argument('names', nargs=-1, required=True)
@add_common_options('pretty')
@standard_command
def classify_tags(names, pretty):
    """Show the type of each tag name.

    \b
    Examples:
        tagguard tag classify v1.2.3 production v1.2.0-stable feature/x
    """
    rows = []
    for name in names:
        tag = to_tag(name)
        rows.append({
            'name': tag.name,
            'type': tag.type.value,
            'immutable': tag.immutable,
            'movable': tag.type == TagType.ENVIRONMENT,
            'subproject': tag.subproject,
        })
    emit(rows, pretty=pretty, columns=['name', 'type', 'immutable', 'movable', 'subproject'])


@tag_cmd.command('validate')
@click.argument('name')
@click.option('-t', '--type', 'tag_type', type=TAG_TYPES, default=None,
              help='Validate against this type instead of the classified one')
@standard_command
def validate_tag_name(name, tag_type):
    """Validate a tag name against its type's naming rules.

    Exits 65 with the violated rule when the name is invalid.
    """
    expected = TagType.parse(tag_type) if tag_type else None
    resolved = validate_tag(name, expected)
    emit([{'name': name, 'type': resolved.value, 'valid': True}])


@tag_cmd.command('list')
@click.argument('pattern', required=False)
@click.option('-t', '--type', 'tag_type', type=TAG_TYPES, default=None, help='Only tags of this type')
@click.option('-s', '--subproject', default=None, help='Only state tags of this subproject')
@add_common_options('repo', 'pretty')
@standard_command
def list_tags(pattern, tag_type, subproject, repo, pretty):
    """List the repository's tags with their types.

    PATTERN: optional glob on the tag name (e.g. "v1.*")
    """
    tags = api.TagGuard(repo=repo).tags(pattern, tag_type=tag_type, subproject=subproject)
    emit(tags, pretty=pretty, columns=['name', 'type', 'commit', 'subproject'])


@tag_cmd.command('status')
@click.option('-n', '--recent', default=5, show_default=True, type=click.IntRange(min=1),
              help='How many version and state tags to show')
@click.option('--strict', is_flag=True, help='Exit 65 when the consistency check finds issues')
@add_common_options('repo', 'pretty')
@standard_command
def show_status(recent, strict, repo, pretty):
    """Show environment tags, recent version and state tags, and consistency issues.

    Read-only. Issues are version tags that share a commit, feature
    tags present locally, and malformed state tags.

    \b
    Examples:
        tagguard tag status --pretty
        tagguard tag status --strict    # in CI
    """
    status = api.TagGuard(repo=repo).status(recent=recent)
    emit_status(status.to_dict(), pretty=pretty)
    if strict and status.issues:
        return VALIDATION_ERROR
