# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.
"""fflaunch browser channels"""

from __future__ import annotations

from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

# --start-debugger-server ws:6000 can also be used, since the remote debugging
# protocol also speaks WebSockets
# https://hacks.mozilla.org/2017/12/using-headless-mode-in-firefox/
HEADLESS_PARAMS = ("-headless", "--start-debugger-server", "6000")


class LaunchTarget:
    """Browser channel definition. Describes where the browser executable
    is found on each platform and how it can be overridden.

    Attributes:
        name: Launcher name.
        env_cmd: Environment variable used to override the executable.
        linux_names: Executable names to look up in PATH (Linux and FreeBSD).
        mac_names: Application bundle names to look up (macOS).
        win_names: Install directory names to look up (Windows and WSL).
        headless: Extra browser arguments used to run headless.
    """

    __slots__ = ("_env_cmd", "_headless", "_linux", "_mac", "_name", "_win")

    def __init__(
        self,
        name: str,
        env_cmd: str,
        mac_names: Iterable[str],
        win_names: Iterable[str],
        linux_names: Iterable[str] = ("firefox",),
        headless: Iterable[str] = (),
    ) -> None:
        self._name = name
        self._env_cmd = env_cmd
        self._linux = tuple(linux_names)
        self._mac = tuple(mac_names)
        self._win = tuple(win_names)
        self._headless = tuple(headless)
        assert self._linux
        assert self._mac
        assert self._win

    def __repr__(self) -> str:
        return f"<LaunchTarget {self._name!r}>"

    @property
    def env_cmd(self) -> str:
        return self._env_cmd

    @property
    def headless(self) -> tuple[str, ...]:
        return self._headless

    @property
    def linux_names(self) -> tuple[str, ...]:
        return self._linux

    @property
    def mac_names(self) -> tuple[str, ...]:
        return self._mac

    @property
    def name(self) -> str:
        return self._name

    @property
    def win_names(self) -> tuple[str, ...]:
        return self._win


def make_headless(
    target: LaunchTarget, params: Iterable[str] = HEADLESS_PARAMS
) -> LaunchTarget:
    """Create a headless variant of a browser channel.

    Args:
        target: Channel to use as a base.
        params: Browser arguments that enable headless mode.

    Returns:
        New channel named '<name>Headless'.
    """
    return LaunchTarget(
        f"{target.name}Headless",
        target.env_cmd,
        target.mac_names,
        target.win_names,
        linux_names=target.linux_names,
        headless=params,
    )


FIREFOX = LaunchTarget(
    "Firefox",
    "FIREFOX_BIN",
    mac_names=("Firefox",),
    win_names=("Mozilla Firefox",),
)
FIREFOX_DEVELOPER = LaunchTarget(
    "FirefoxDeveloper",
    "FIREFOX_DEVELOPER_BIN",
    mac_names=("FirefoxDeveloperEdition", "FirefoxAurora"),
    win_names=("Firefox Developer Edition",),
)
FIREFOX_AURORA = LaunchTarget(
    "FirefoxAurora",
    "FIREFOX_AURORA_BIN",
    mac_names=("FirefoxAurora",),
    win_names=("Aurora",),
)
FIREFOX_NIGHTLY = LaunchTarget(
    "FirefoxNightly",
    "FIREFOX_NIGHTLY_BIN",
    mac_names=("FirefoxNightly", "Firefox Nightly"),
    win_names=("Nightly", "Firefox Nightly"),
)

_launchers: dict[str, LaunchTarget] = {}
for _target in (FIREFOX, FIREFOX_DEVELOPER, FIREFOX_AURORA, FIREFOX_NIGHTLY):
    _launchers[_target.name] = _target
    _launchers[f"{_target.name}Headless"] = make_headless(_target)

LAUNCHERS = MappingProxyType(_launchers)
