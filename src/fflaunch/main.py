# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.
"""fflaunch main.py"""

from __future__ import annotations

from argparse import ArgumentParser, Namespace
from importlib.metadata import PackageNotFoundError, version
from json import loads
from logging import DEBUG, ERROR, INFO, WARNING, basicConfig, getLogger
from pathlib import Path
from time import sleep

from .core import BrowserLauncher, LaunchArgs
from .display import DisplayMode
from .exceptions import LaunchError
from .targets import LAUNCHERS

LOG = getLogger(__name__)

try:
    __version__ = version("fflaunch")
except PackageNotFoundError:  # pragma: no cover
    # package is not installed
    __version__ = "unknown"


def parse_prefs(values: list[str]) -> dict[str, object]:
    """Parse preferences in the form 'name=value'. The value is parsed as JSON,
    if that fails it is used as a string.

    Args:
        values: Preferences to parse.

    Returns:
        Preferences.
    """
    prefs: dict[str, object] = {}
    for entry in values:
        name, sep, raw = entry.partition("=")
        if not sep or not name:
            raise ValueError(f"Invalid pref '{entry}'")
        try:
            prefs[name] = loads(raw)
        except ValueError:
            prefs[name] = raw
    return prefs


def parse_args(argv: list[str] | None = None) -> Namespace:
    """Handle argument parsing.

    Args:
        argv: Arguments from the user.

    Returns:
        Parsed and sanitized arguments.
    """

    log_level_map = {"ERROR": ERROR, "WARN": WARNING, "INFO": INFO, "DEBUG": DEBUG}

    parser = ArgumentParser(
        prog="fflaunch",
        description="fflaunch - Firefox launcher with WSL support.",
    )
    parser.add_argument("url", help="URL to open.")
    parser.add_argument(
        "--launcher",
        choices=sorted(LAUNCHERS),
        default="Firefox",
        help="Browser channel to launch (default: %(default)s)",
    )
    parser.add_argument(
        "--log-level",
        choices=sorted(log_level_map),
        default="INFO",
        help="Configure console logging (default: %(default)s)",
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=0.5,
        help="Delay between checks for browser exit (default: %(default)s)",
    )
    parser.add_argument(
        "--version",
        "-V",
        action="version",
        version=f"%(prog)s {__version__}",
        help="Show version number",
    )

    cfg_group = parser.add_argument_group("Browser Configuration")
    cfg_group.add_argument(
        "--display",
        choices=sorted(x.name.lower() for x in DisplayMode),
        default=DisplayMode.DEFAULT.name.lower(),
        help="Display mode.",
    )
    cfg_group.add_argument(
        "-e",
        "--extension",
        action="append",
        type=Path,
        help="Install extensions. Specify the path to the xpi or the directory "
        "containing the unpacked extension.",
    )
    cfg_group.add_argument(
        "--flag",
        action="append",
        default=[],
        help="Additional argument to pass to the browser.",
    )
    cfg_group.add_argument(
        "--headless",
        action="store_true",
        help="Use the headless variant of the selected launcher.",
    )
    cfg_group.add_argument(
        "--pref",
        action="append",
        default=[],
        help="Set a preference, for example 'dom.max_script_run_time=10'.",
    )
    cfg_group.add_argument(
        "-P",
        "--profile",
        type=Path,
        help="Profile directory to use. (default: temporary profile)",
    )

    args = parser.parse_args(argv)

    # sanity checks
    if args.extension:
        for ext in args.extension:
            if not ext.exists():
                parser.error(f"Extension '{ext}' does not exist")
    if args.headless and not args.launcher.endswith("Headless"):
        args.launcher = f"{args.launcher}Headless"
    args.log_level = log_level_map[args.log_level]
    if args.poll_interval <= 0:
        parser.error("--poll-interval must be > 0")
    try:
        args.pref = parse_prefs(args.pref)
    except ValueError as exc:
        parser.error(str(exc))

    return args


def main(argv: list[str] | None = None) -> None:
    """fflaunch main entry point."""
    args = parse_args(argv)
    # set output verbosity
    if args.log_level == DEBUG:
        date_fmt = None
        log_fmt = "%(asctime)s %(levelname).1s %(name)s | %(message)s"
    else:
        date_fmt = "%Y-%m-%d %H:%M:%S"
        log_fmt = "[%(asctime)s] %(message)s"
    basicConfig(format=log_fmt, datefmt=date_fmt, level=args.log_level)

    launcher = BrowserLauncher(
        LAUNCHERS[args.launcher],
        args=LaunchArgs(
            profile=args.profile,
            flags=args.flag,
            extensions=args.extension,
            prefs=args.pref,
        ),
        display_mode=DisplayMode[args.display.upper()],
    )
    try:
        LOG.info("Launching %s...", args.launcher)
        launcher.start(args.url)
        launch = launcher.launch_info
        assert launch is not None
        LOG.info("Running (pid: %d)...", launch.proc.pid)
        while launcher.is_running():
            sleep(args.poll_interval)
        if launch.cross_boundary:
            # the intermediary script exits once the Windows browser is started
            if launch.watcher is not None:
                launch.watcher.join(timeout=10)
            if launcher.foreign_pid is None:
                LOG.warning("Windows browser pid is unknown")
            else:
                LOG.info("Windows browser pid: %d", launcher.foreign_pid)
            LOG.info("Press Ctrl+C to exit")
            while True:
                sleep(args.poll_interval)
        LOG.info("Browser process exited")
    except KeyboardInterrupt:
        LOG.info("Ctrl+C detected.")
    except LaunchError as exc:
        LOG.error("Launch failed: %s", exc)
    finally:
        LOG.info("Shutting down...")
        launcher.kill()
        LOG.info("Done.")
