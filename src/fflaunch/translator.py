# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.
"""fflaunch WSL path translation"""

from __future__ import annotations

from logging import getLogger
from re import IGNORECASE
from re import compile as re_compile
from subprocess import CalledProcessError, check_output

from .exceptions import PathTranslationError

LOG = getLogger(__name__)

# characters that require escaping when passed through the shell
_ESCAPE = re_compile(r"([\\\s()'\"&;$`|<>*?!#~{}\[\]])")
_FOREIGN = re_compile(r"^[A-Z]:\\", IGNORECASE)
_NEWLINES = re_compile(r"\r\n|\r|\n")


def escape_path(path: str) -> str:
    """Escape a path so it can be passed to a shell command unquoted.

    Args:
        path: Path to escape.

    Returns:
        Escaped path.
    """
    return _ESCAPE.sub(r"\\\1", _NEWLINES.sub("", path).strip())


def is_foreign_path(path: str) -> bool:
    """Check if a path is an absolute Windows path (starts with a drive letter).

    Args:
        path: Path to check.

    Returns:
        True if path is a Windows path otherwise False.
    """
    return _FOREIGN.match(path) is not None


class PathTranslator:
    """Translate paths between the WSL (Linux) namespace and the host
    (Windows) namespace using the `wslpath` utility.
    """

    TOOL = "wslpath"

    __slots__ = ()

    @classmethod
    def _run(cls, cmd: str, encoding: str = "utf-8") -> str:
        LOG.debug("running '%s'", cmd)
        try:
            output = check_output(cmd, shell=True)
        except (CalledProcessError, OSError) as exc:
            raise PathTranslationError(f"'{cmd}' failed: {exc}") from None
        return _NEWLINES.sub("", output.decode(encoding, errors="replace")).strip()

    def foreign_temp_dir(self) -> str:
        """Look up the Windows temporary directory (%Temp%).

        Args:
            None

        Returns:
            Windows path of the temporary directory.
        """
        # '/u' makes cmd.exe output UTF-16-LE
        temp = self._run("cmd.exe /u /q /c ECHO %Temp%", encoding="utf-16-le")
        if not temp:
            raise PathTranslationError("Unable to find Windows %Temp%")
        return temp

    def to_foreign(self, path: str) -> str:
        """Translate a local (Linux) path to a Windows path.

        Args:
            path: Path in the WSL filesystem.

        Returns:
            Windows path.
        """
        return self._run(f"{self.TOOL} -w {escape_path(path)}")

    def to_foreign_command(self, command: str) -> str:
        """Translate the location of an executable to a Windows path.
        Only the parent directory is translated, the executable name is kept as is.

        Args:
            command: Path to executable in the WSL filesystem.

        Returns:
            Windows path of the executable.
        """
        parent, _, executable = command.rpartition("/")
        foreign_parent = self.to_foreign(parent or "/").rstrip("\\")
        return f"{foreign_parent}\\{executable}"

    def to_local(self, path: str) -> str:
        """Translate a Windows path to an absolute local (Linux) path.

        Args:
            path: Windows path.

        Returns:
            Path in the WSL filesystem.
        """
        return self._run(f"{self.TOOL} -a {escape_path(path)}")
