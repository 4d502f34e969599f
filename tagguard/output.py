"""
Output module for tagguard.

Provides consistent output formatting across all commands:
- JSONL (default): Newline-delimited JSON for CI steps and hooks
- Pretty: Human-readable tables using Rich

Usage:
    from tagguard.output import emit, emit_error

    # Stream items as JSONL (default) or pretty table
    emit(tags, pretty=pretty)

    # Emit error as JSON
    emit_error("Tag not found", type="not_found", context={"tag": "v1.0.0"})
"""

import json
import re
import sys
from typing import Iterable, Any, Dict, Optional, List

from rich.console import Console
from rich.table import Table

# Diagnostics go to stderr so stdout stays machine-readable
err_console = Console(stderr=True)

# Known fields, in table order
TABLE_COLUMNS = ['name', 'tag', 'type', 'status', 'commit', 'previous_commit', 'subproject', 'details']

FULL_SHA_RE = re.compile(r'^[0-9a-f]{40}\Z')

STATUS_STYLES = {
    'created': 'green',
    'moved': 'yellow',
    'unchanged': 'dim',
    'passed': 'green',
    'skipped': 'dim',
    'warned': 'yellow',
    'refused': 'red',
    'blocked': 'red',
    'error': 'red',
    'timeout': 'red',
}


def _as_dict(item: Any) -> Dict[str, Any]:
    if hasattr(item, 'to_dict'):
        return item.to_dict()
    if isinstance(item, dict):
        return item
    return {'value': str(item)}


def emit(
    items: Iterable[Any],
    pretty: bool = False,
    columns: Optional[List[str]] = None,
    err: bool = False
) -> None:
    """
    Emit items as JSONL or pretty table.

    Args:
        items: Items to emit (should have to_dict() method or be dicts)
        pretty: If True, render as table. If False, output JSONL
        columns: Column names for table (auto-detected if None)
        err: If True, output to stderr instead of stdout
    """
    stream = sys.stderr if err else sys.stdout

    if pretty:
        _emit_table(items, columns)
    else:
        _emit_jsonl(items, stream)


def _emit_jsonl(items: Iterable[Any], stream=None) -> None:
    """Emit items as JSONL."""
    stream = stream or sys.stdout
    for item in items:
        print(json.dumps(_as_dict(item), ensure_ascii=False), file=stream, flush=True)


def _emit_table(items: Iterable[Any], columns: Optional[List[str]] = None) -> None:
    """Emit items as a Rich table."""
    rows = [_as_dict(item) for item in items]

    console = Console()
    if not rows:
        console.print("No results found")
        return

    # Auto-detect columns if not provided
    if not columns:
        columns = _auto_columns(rows)

    table = Table(show_header=True, header_style="bold")
    for col in columns:
        table.add_column(col)

    for row in rows:
        values = [_format_value(row.get(col, '')) for col in columns]
        table.add_row(*values)

    console.print(table)


def _auto_columns(rows: List[Dict]) -> List[str]:
    """Column order for a table: known tag fields first, then the rest by name."""
    if not rows:
        return []

    keys = set().union(*(row.keys() for row in rows))
    columns = [col for col in TABLE_COLUMNS if col in keys]
    columns += sorted(keys - set(columns))
    return columns[:8]


def _format_value(value: Any, max_len: int = 60) -> str:
    """Render one cell; full commit ids are shortened to 7 characters."""
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'Yes' if value else 'No'
    if isinstance(value, (list, tuple)):
        shown = ', '.join(_format_value(v, max_len) for v in value[:3])
        extra = len(value) - 3
        return f'{shown} (+{extra} more)' if extra > 0 else shown
    if isinstance(value, dict):
        return ', '.join(f'{k}={v}' for k, v in list(value.items())[:2]) or '-'

    text = str(value)
    if FULL_SHA_RE.match(text):
        return text[:7]
    if len(text) > max_len:
        return text[:max_len - 3] + '...'
    return text


def emit_assignment(result: Dict[str, Any], pretty: bool = False) -> None:
    """Emit one assignment result (AssignmentResult.to_dict() shape)."""
    if not pretty:
        _emit_jsonl([result])
        return

    status = result.get('status', 'error')
    style = STATUS_STYLES.get(status, 'default')
    label = status.upper()
    if result.get('forced'):
        label += " (forced)"
    if result.get('dry_run'):
        label += " (dry run)"

    console = Console()
    console.print(f"[{style}]{label}[/{style}] {result.get('tag') or '-'}")
    console.print(f"  {result.get('details', '')}")
    if result.get('previous_commit') and result.get('commit'):
        console.print(f"  {result['previous_commit'][:7]} -> {result['commit'][:7]}")
    for name, reason in (result.get('push_rejected') or {}).items():
        console.print(f"  [red]push rejected[/red] {name}: {reason}")


def emit_protection(result: Dict[str, Any], pretty: bool = False) -> None:
    """Emit one protection check (ProtectionResult.to_dict() shape), with a violations table when pretty."""
    if not pretty:
        _emit_jsonl([result])
        return

    status = result.get('status', 'error')
    style = STATUS_STYLES.get(status, 'default')
    mode = result.get('mode')

    console = Console()
    console.print(f"[{style}]{status.upper()}[/{style}] "
                  f"{f'(protection: {mode}) ' if mode else ''}{result.get('details', '')}")

    violations = result.get('violations') or []
    if violations:
        table = Table(show_header=True, header_style="bold")
        for col in ('tag', 'type', 'rule', 'message'):
            table.add_column(col)
        for violation in violations:
            table.add_row(*[_format_value(violation.get(col), max_len=80)
                            for col in ('tag', 'type', 'rule', 'message')])
        console.print(table)

    for warning in result.get('warnings') or []:
        console.print(f"[yellow]warning[/yellow] {warning}")


def emit_status(status: Dict[str, Any], pretty: bool = False) -> None:
    """Emit a tag status snapshot (TagStatus.to_dict() shape); one table per section when pretty."""
    if not pretty:
        _emit_jsonl([status])
        return

    console = Console()
    console.print("[bold]Environment tags[/bold]")
    for env, commit in (status.get('environments') or {}).items():
        if commit:
            console.print(f"  [green]\u2713[/green] {env}: {_format_value(commit)}")
        else:
            console.print(f"  [red]\u2717[/red] {env}: not found")

    for key, title in (('versions', 'Recent version tags'), ('states', 'Recent state tags')):
        console.print(f"[bold]{title}[/bold]")
        _emit_table(status.get(key) or [], ['name', 'commit'])

    issues = status.get('issues') or []
    if not issues:
        console.print("[green]No consistency issues[/green]")
    for issue in issues:
        console.print(f"[yellow]issue[/yellow] {issue['message']}")


def emit_error(
    error: str,
    type: str = "error",
    context: Optional[Dict[str, Any]] = None,
    exit_code: Optional[int] = None,
) -> None:
    """
    Emit error as a JSON line on stdout.

    Args:
        error: Error message
        type: Error kind (e.g., "not_found", "config_error")
        context: Additional context dict
        exit_code: Exit code the command is about to return
    """
    obj = {
        'error': error,
        'type': type
    }
    if exit_code is not None:
        obj['exit_code'] = exit_code
    if context:
        obj['context'] = context

    print(json.dumps(obj, ensure_ascii=False), flush=True)


def emit_success(message: str, data: Optional[Dict] = None, pretty: bool = False) -> None:
    """
    Emit success message.

    Args:
        message: Success message
        data: Optional additional data
        pretty: If True, print human-readable message
    """
    if pretty:
        Console().print(f"[green]Success:[/green] {message}")
    else:
        obj = {'success': True, 'message': message}
        if data:
            obj['data'] = data
        print(json.dumps(obj, ensure_ascii=False), flush=True)
