# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.
"""fflaunch module"""

from .core import (
    BrowserLauncher,
    LaunchArgs,
    LaunchState,
    ResolvedCommand,
    RunningLaunch,
    create_launcher,
)
from .display import DisplayMode
from .exceptions import LaunchError, PathTranslationError, TerminateError
from .resolver import ExecutableResolver
from .spawner import discover_foreign_pid
from .targets import LAUNCHERS, LaunchTarget, make_headless
from .translator import PathTranslator

__all__ = (
    "LAUNCHERS",
    "BrowserLauncher",
    "DisplayMode",
    "ExecutableResolver",
    "LaunchArgs",
    "LaunchError",
    "LaunchState",
    "LaunchTarget",
    "PathTranslationError",
    "PathTranslator",
    "ResolvedCommand",
    "RunningLaunch",
    "TerminateError",
    "create_launcher",
    "discover_foreign_pid",
    "make_headless",
)
