"""
Module implementing the command-line interface of icepersist.

The CLI is a thin operator tool around the persistence backend: it imports remote file
trees to check what a node would register, lists remote directories, and reports the
home directory on the default file system. All of it uses the same configuration and
error reporting as the backend itself, which makes it useful to debug endpoints and
credentials before starting a cluster.
"""

import sys
from typing import List, NoReturn, Optional

from icepersist.args import Arguments
from icepersist.config import Config
import icepersist.constants as constants
from icepersist.encoding import Encoding
from icepersist.errors import PersistError
from icepersist.filesystem import FileSystemResolver, PersistEntry, RemoteFileSystem
from icepersist.importer import ImportManifest
from icepersist.logger import log, set_verbosity
from icepersist.persist import PersistRemote
from icepersist.timeline import timeline


def _run(args: Arguments, config: Config) -> int:
    encoding = Encoding(ImportManifest, PersistEntry)

    # Browsing needs neither the ice root nor the retry loop
    filesystem = RemoteFileSystem(FileSystemResolver(config))

    if args.command == "import":
        with PersistRemote(config) as backend:
            manifest = backend.import_files(args.path)

        if args.json:
            encoding.dump_json(manifest, sys.stdout)
            print()
        else:
            for key in manifest.keys:
                print(key)
            for failure in manifest.failures:
                print(f"failed: {failure}", file=sys.stderr)

        return 1 if manifest.failures else 0
    elif args.command == "ls":
        entries = filesystem.list(args.path)

        if args.json:
            encoding.dump_json(entries, sys.stdout)
            print()
        else:
            for entry in entries:
                print(f"{entry.size:>12} {entry.timestamp_millis:>14} {entry.name}")

        return 0
    elif args.command == "home":
        home = filesystem.home_directory()

        if home is None:
            log.error("unable to determine home directory")
            return 1

        print(home)
        return 0
    else:
        raise ValueError(f"unknown command {args.command}")


def main(arguments: Optional[List[str]] = None) -> NoReturn:
    """
    Run the command given by the arguments and exit.

    Defaults to parsing command-line arguments from sys.argv if none are specified.
    """
    args = Arguments.parse(arguments)

    set_verbosity(args.debug)

    config = Config.create(args.config, args.default_fs)

    try:
        exit_code = _run(args, config)
    except PersistError as e:
        log.error(f"failed to run command: {e}")
        exit_code = constants.ERROR_CODE

    if args.timeline is not None:
        with open(args.timeline, "w") as f:
            timeline.dump_json(f)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
