# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.
"""fflaunch browser executable lookup"""

from __future__ import annotations

import ntpath
import posixpath
from logging import getLogger
from os import environ
from os.path import isdir, isfile
from platform import system
from re import IGNORECASE
from re import compile as re_compile
from shutil import which
from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from .targets import LaunchTarget
    from .translator import PathTranslator

LOG = getLogger(__name__)

MAC_APPS = "/Applications"
MAC_BIN = "Contents/MacOS/firefox-bin"
WIN_DEFAULT_PREFIX = "C:\\Program Files"
WIN_EXE = "firefox.exe"
# PROGRAMFILES and PROGRAMFILES(X86) are not available in WSL
WSL_DEFAULT_PREFIX = "/mnt/c/Program Files"
WSL_PREFIXES = ("Program Files", "Program Files (x86)")

_DRIVE = re_compile(r"^([A-Z]):\\", IGNORECASE)


def _first_file(
    prefixes: Iterable[str],
    names: Iterable[str],
    join: Callable[..., str],
) -> str | None:
    """Probe each '<prefix>/<name>/firefox.exe' candidate in order.

    Args:
        prefixes: Install prefixes to search.
        names: Install directory names to search for in each prefix.
        join: Function used to build the candidate path.

    Returns:
        First existing candidate or None.
    """
    probed: set[str] = set()
    for prefix in prefixes:
        for name in names:
            candidate = join(prefix, name, WIN_EXE)
            if candidate in probed:
                continue
            probed.add(candidate)
            if isfile(candidate):
                return candidate
    return None


class ExecutableResolver:
    """Find the browser executable for a LaunchTarget on the current platform.

    Lookup order:
        1. Environment variable override (LaunchTarget.env_cmd).
        2. Platform default (PATH, install prefixes or application bundles).
    When running in a WSL guest resolve_foreign() searches the Windows install
    prefixes of all drives visible in PATH.
    """

    __slots__ = ("_environ", "_system", "_translator")

    def __init__(
        self,
        env: Mapping[str, str] | None = None,
        system_name: str | None = None,
        translator: PathTranslator | None = None,
    ) -> None:
        """
        Args:
            env: Environment to use (default: os.environ).
            system_name: Platform name as returned by platform.system().
            translator: Path translator, required to search from a WSL guest.
        """
        self._environ = environ if env is None else env
        self._system = system() if system_name is None else system_name
        self._translator = translator

    def find_macos_bin(self, names: Sequence[str]) -> str | None:
        """Search the user and global application folders for a browser bundle.

        Args:
            names: Application bundle names, in order of preference.

        Returns:
            Path to the browser executable or None.
        """
        home = self._environ.get("HOME")
        for name in names:
            bundle = posixpath.join(f"{name}.app", MAC_BIN)
            if home:
                home_bin = posixpath.join(home, MAC_APPS.lstrip("/"), bundle)
                if isfile(home_bin):
                    return home_bin
            global_bin = posixpath.join(MAC_APPS, bundle)
            if isfile(global_bin):
                return global_bin
        return None

    def find_on_path(self, names: Sequence[str]) -> str | None:
        """Search PATH for an executable. The name is returned unresolved,
        PATH is used again to find it when the browser is launched.

        Args:
            names: Executable names, in order of preference.

        Returns:
            Name of the first executable found or None.
        """
        for name in names:
            if which(name, path=self._environ.get("PATH")):
                return name
        return None

    def find_windows_exe(self, names: Sequence[str]) -> str:
        """Search the install prefixes of all drives for the browser.
        NOTE: The fallback value is not validated.

        Args:
            names: Install directory names, in order of preference.

        Returns:
            Path to the browser executable. If it is not found the default
            install location is returned.
        """
        found = _first_file(self.install_prefixes(), names, ntpath.join)
        if found is None:
            found = ntpath.join(WIN_DEFAULT_PREFIX, names[0], WIN_EXE)
            LOG.debug("executable not found, guessing '%s'", found)
        return found

    def find_wsl_exe(self, names: Sequence[str]) -> str:
        """Search the Windows install prefixes from inside a WSL guest.
        NOTE: The fallback value is not validated.

        Args:
            names: Install directory names, in order of preference.

        Returns:
            Local (Linux) path to the browser executable. If it is not found the
            default install location is returned.
        """
        found = _first_file(self.wsl_install_prefixes(), names, posixpath.join)
        if found is None:
            found = posixpath.join(WSL_DEFAULT_PREFIX, names[0], WIN_EXE)
            LOG.debug("executable not found, guessing '%s'", found)
        return found

    def install_prefixes(self) -> list[str]:
        """Build a list of Program Files folders for each drive found in PATH.
        Multi-drive installs are common so the system drive is not enough.

        Args:
            None

        Returns:
            Unique install prefixes.
        """
        path_var = self._environ.get("PATH") or self._environ.get("Path") or ""
        drives: list[str] = []
        for entry in path_var.split(";"):
            if _DRIVE.match(entry) and entry[0].upper() not in drives:
                drives.append(entry[0].upper())

        prefixes: list[str] = []
        seen: set[str] = set()
        for env_var in ("PROGRAMFILES", "PROGRAMFILES(X86)"):
            value = self._environ.get(env_var)
            if not value:
                continue
            for drive in drives:
                prefix = f"{drive}{value[1:]}"
                key = ntpath.normcase(ntpath.normpath(prefix))
                if key not in seen:
                    seen.add(key)
                    prefixes.append(prefix)
        LOG.debug("found %d install prefix(es)", len(prefixes))
        return prefixes

    def resolve(self, target: LaunchTarget) -> str | None:
        """Find the browser executable for the current platform.

        Args:
            target: Browser channel to look up.

        Returns:
            Path or name of the executable. None if it cannot be found.
        """
        override = self._environ.get(target.env_cmd)
        if override:
            LOG.debug("using %s='%s'", target.env_cmd, override)
            return override
        if self._system in ("FreeBSD", "Linux"):
            return self.find_on_path(target.linux_names)
        if self._system == "Darwin":
            return self.find_macos_bin(target.mac_names)
        if self._system == "Windows":
            return self.find_windows_exe(target.win_names)
        LOG.warning("Unsupported platform '%s'", self._system)
        return None

    def resolve_foreign(self, target: LaunchTarget) -> str | None:
        """Find the Windows browser executable from inside a WSL guest.

        Args:
            target: Browser channel to look up.

        Returns:
            Local (Linux) path to the executable or None when not running in WSL.
        """
        if self._translator is None:
            return None
        return self.find_wsl_exe(target.win_names)

    def wsl_install_prefixes(self) -> list[str]:
        """Build a list of Program Files folders for each Windows drive found in
        PATH. Drives can be mounted anywhere (see wsl.conf) so each PATH entry is
        translated to a Windows path to find the drive letter.

        Args:
            None

        Returns:
            Unique local (Linux) paths of the install prefixes.
        """
        if self._translator is None:
            LOG.debug("no path translator, not running in WSL")
            return []
        drives: list[str] = []
        for entry in self._environ.get("PATH", "").split(":"):
            if not entry or not isdir(entry):
                continue
            match = _DRIVE.match(self._translator.to_foreign(entry))
            if match is not None and match.group(1).upper() not in drives:
                drives.append(match.group(1).upper())

        prefixes: list[str] = []
        for prefix in WSL_PREFIXES:
            for drive in drives:
                local = self._translator.to_local(f"{drive}:\\{prefix}")
                if local not in prefixes:
                    prefixes.append(local)
        LOG.debug("found %d install prefix(es)", len(prefixes))
        return prefixes
