#!/usr/bin/env python3

import logging
import click

from tagguard import __version__
from tagguard.config import load_config, configure_logging
from tagguard.exit_codes import ConfigError
from tagguard.commands.assign import assign_cmd
from tagguard.commands.protect import protect_cmd
from tagguard.commands.version import version_cmd
from tagguard.commands.tag import tag_cmd
from tagguard.commands.hook import hook_cmd
from tagguard.commands.config import config_cmd

logger = logging.getLogger(__name__)


@click.group()
@click.version_option(version=__version__, prog_name='tagguard')
@click.option('-v', '--verbose', is_flag=True, help='Debug logging on stderr')
def cli(verbose):
    """tagguard - Git tag governance.

    Classifies and validates tags, creates and moves them under
    immutability rules, and blocks pushes that would break them.
    """
    try:
        config = load_config()
    except ConfigError as e:
        # Commands that need the config report the error themselves
        logger.debug(e.message)
        config = None
    configure_logging(config, verbose=verbose)


# Governance commands
cli.add_command(assign_cmd)
cli.add_command(protect_cmd)

# Utility groups
cli.add_command(version_cmd)
cli.add_command(tag_cmd)
cli.add_command(hook_cmd)
cli.add_command(config_cmd)


def main():
    cli()

if __name__ == "__main__":
    main()
