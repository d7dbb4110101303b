"""Module defining the command-line arguments and providing a parser for them."""

from __future__ import annotations

import argparse
from typing import List, Optional

from icepersist.constants import VERSION


class Arguments(argparse.Namespace):
    """Parsed command-line arguments."""

    command: str
    path: Optional[str]

    config: Optional[str]
    default_fs: Optional[str]

    debug: bool
    json: bool
    timeline: Optional[str]

    @classmethod
    def parse(cls, args: Optional[List[str]] = None) -> Arguments:
        """
        Parse command-line arguments from the given list of strings.

        Defaults to sys.argv if none are specified.
        """
        return cls._get_parser().parse_args(args, namespace=cls())

    @classmethod
    def _get_parser(cls) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            description="Import and browse file trees on remote file systems.",
            usage="icepersist [option...] command [path]",
        )

        parser.add_argument(
            "--version",
            action="version",
            version=f"%(prog)s {VERSION}",
            help="show the program version",
        )

        # Configuration, either a file or just the default file system
        source = parser.add_mutually_exclusive_group()
        source.add_argument(
            "--config", type=str, help="path to config file", default=None,
        )
        source.add_argument(
            "--default-fs",
            type=str,
            help="default file system for paths without a scheme",
            default=None,
        )

        # Enable debug output for development
        parser.add_argument(
            "--debug", action="store_true", help="enable debug information"
        )

        # Machine readable output
        parser.add_argument("--json", action="store_true", help="print results as JSON")

        # Export of I/O telemetry
        parser.add_argument(
            "--timeline", type=str, help="write I/O events to this file as JSON"
        )

        commands = parser.add_subparsers(dest="command", metavar="command")
        commands.required = True

        import_parser = commands.add_parser("import", help="import a file tree")
        import_parser.add_argument("path", type=str, help="file or directory to import")

        ls_parser = commands.add_parser("ls", help="list a directory")
        ls_parser.add_argument("path", type=str, help="directory to list")

        commands.add_parser("home", help="print the home directory")

        parser.set_defaults(path=None)

        return parser
