import click
import json

from ..config import load_config, save_config, get_config_path, get_default_config
from ..cli_utils import standard_command
from ..exit_codes import CommandError, GENERAL_ERROR
from ..output import emit_success


@click.group("config")
def config_cmd():
    """Configuration management commands."""
    pass


@config_cmd.command("show")
@click.option("--pretty", is_flag=True, help="Display as formatted JSON instead of single-line JSONL")
@standard_command
def show_config(pretty):
    """Show the current configuration with all merges applied.

    Includes defaults, the config file and TAGGUARD_* environment
    overrides (e.g. TAGGUARD_PROTECTION_MODE=WARN).
    """
    config = load_config()

    if pretty:
        print(json.dumps(config, indent=2, ensure_ascii=False))
    else:
        print(json.dumps(config, ensure_ascii=False))


@config_cmd.command("path")
@standard_command
def show_path():
    """Show the config file path being used."""
    config_path = get_config_path()
    print(json.dumps({"config_path": str(config_path), "exists": config_path.exists()}))


@config_cmd.command("init")
@click.option("--format", "fmt", type=click.Choice(["json", "toml", "yaml"]), default="json",
              show_default=True, help="File format to write")
@click.option("--force", is_flag=True, help="Overwrite an existing config file")
@standard_command
def init_config(fmt, force):
    """Write a config file with the default settings."""
    current = get_config_path()
    if current.exists() and not force:
        raise CommandError(f"Configuration already exists at {current}; use --force to overwrite",
                           GENERAL_ERROR)

    path = current.with_suffix(f".{fmt}")
    saved = save_config(get_default_config(), path)
    emit_success(f"Configuration written to {saved}", data={"path": str(saved)})
