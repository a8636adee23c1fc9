#!/usr/bin/env python
"""fake firefox"""

import sys
from argparse import ArgumentParser
from os import getpid
from pathlib import Path
from time import sleep

EXIT_DELAY = 45


def main() -> int:
    """Fake Firefox for testing"""
    parser = ArgumentParser(prog="testff", description="Fake Firefox for testing")
    parser.add_argument("url")
    parser.add_argument("-headless", action="store_true", help="ignored")
    parser.add_argument("-no-remote", action="store_true", help="ignored")
    parser.add_argument("-wait-for-browser", action="store_true", help="ignored")
    parser.add_argument("--start-debugger-server", type=int, help="ignored")
    parser.add_argument("-profile", type=Path, required=True)
    args = parser.parse_args()

    if not (args.profile / "prefs.js").is_file():
        sys.stderr.write("prefs.js not found\n")
        return 1
    # mimic the launcher process when MOZ_DEBUG_BROWSER_PAUSE is set
    sys.stderr.write(f"\n\nBROWSERBROWSERBROWSERBROWSER\n  debug me @ {getpid()}\n\n")
    sys.stderr.flush()
    for _ in range(EXIT_DELAY):
        sleep(1)
    return 0


if __name__ == "__main__":
    sys.exit(main())
