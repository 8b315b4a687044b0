"""CLI entry points for RxMatch.

Provides command-line tools for working the manual review queue.
"""

import click

from .. import __version__
from ..logging import setup_logging
from .review import review_group


@click.group()
@click.version_option(version=__version__, prog_name="rxmatch")
def main():
    """RxMatch - manual review of low-confidence prescription calculations."""
    setup_logging()


main.add_command(review_group, name="review")


if __name__ == "__main__":
    main()
