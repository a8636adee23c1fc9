# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.
"""fflaunch cross-boundary spawner

Windows processes started from a WSL guest are not children of the launcher
so the browser PID is unknown. The browser is started with
'wmic.exe process call create' from an intermediary bash script. The script
extracts the PID from the wmic output and reports it on stderr using the same
sentinel line the Firefox launcher process emits when
MOZ_DEBUG_BROWSER_PAUSE is set.
"""

from __future__ import annotations

from codecs import getincrementaldecoder
from functools import partial
from logging import getLogger
from re import compile as re_compile
from shlex import quote
from subprocess import DEVNULL, PIPE, Popen
from threading import Thread
from typing import TYPE_CHECKING, Callable

from .exceptions import LaunchError

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from io import BufferedIOBase

LOG = getLogger(__name__)

BASH = "/bin/bash"
BUF_SIZE = 4096
SENTINEL = "BROWSERBROWSERBROWSERBROWSER"
# the PID must be followed by a non-digit to avoid matching a partial value
SENTINEL_PATTERN = re_compile(r"(?:BROWSER){4}\s+debug me @ (\d+)(?=\D)")

INDIRECTION_SCRIPT = """\
output=$(wmic.exe process call create {command_line})
while IFS= read -r line; do
  if [[ $line == *"ProcessId = "* ]]; then
    pid=${{line#*ProcessId = }}
    pid=${{pid%;*}}
    echo >&2 "{sentinel} debug me @ $pid"
    exit 0
  fi
done < <(printf '%s\\n' "$output")
exit 0
"""


class PidScanner:
    """Scan a byte stream for the browser PID sentinel line. Data can be
    split at any offset, including in the middle of a multi-byte character.
    Only the first PID found is reported.
    """

    # amount of unmatched text retained between chunks
    TAIL = 128

    __slots__ = ("_buffer", "_decoder", "pid")

    def __init__(self) -> None:
        self._buffer = ""
        self._decoder = getincrementaldecoder("utf-8")(errors="replace")
        self.pid: int | None = None

    def _scan(self) -> int | None:
        match = SENTINEL_PATTERN.search(self._buffer)
        if match is None:
            self._buffer = self._buffer[-self.TAIL :]
            return None
        self._buffer = ""
        self.pid = int(match.group(1))
        return self.pid

    def close(self) -> int | None:
        """Flush remaining data. Call once the end of the stream is reached.

        Args:
            None

        Returns:
            PID if it was found in the remaining data otherwise None.
        """
        if self.pid is not None:
            return None
        # terminate the last line
        self._buffer += self._decoder.decode(b"", final=True) + "\n"
        return self._scan()

    def feed(self, data: bytes) -> int | None:
        """Scan a chunk of the stream.

        Args:
            data: Data read from the stream.

        Returns:
            PID if it was found in this chunk otherwise None.
        """
        if self.pid is not None:
            return None
        self._buffer += self._decoder.decode(data)
        return self._scan()


def build_browser_args(
    url: str,
    profile: str,
    headless: Iterable[str] = (),
    flags: Iterable[str] = (),
) -> list[str]:
    """Build browser arguments.

    Args:
        url: URL to open.
        profile: Profile directory.
        headless: Arguments that enable headless mode.
        flags: Additional user supplied arguments.

    Returns:
        Browser arguments (not including the executable).
    """
    args = [url, "-profile", profile, "-no-remote", "-wait-for-browser"]
    args.extend(headless)
    args.extend(flags)
    return args


def build_indirection_script(command_line: str) -> str:
    """Create the bash script used to launch a Windows process and report its PID.

    Args:
        command_line: Windows command line to execute.

    Returns:
        Bash script.
    """
    return INDIRECTION_SCRIPT.format(
        command_line=quote(command_line), sentinel=SENTINEL
    )


def discover_foreign_pid(
    stream: BufferedIOBase,
    on_pid: Callable[[int], object] | None = None,
) -> int | None:
    """Read a stream until EOF looking for the browser PID sentinel.
    The stream is drained even after the PID is found.

    Args:
        stream: Stream to read (typically stderr of the spawned process).
        on_pid: Called once when the PID is found.

    Returns:
        Browser PID or None if it was not found.
    """
    scanner = PidScanner()
    for chunk in iter(partial(stream.read1, BUF_SIZE), b""):
        pid = scanner.feed(chunk)
        if pid is not None:
            LOG.debug("found browser pid %d", pid)
            if on_pid is not None:
                on_pid(pid)
    pid = scanner.close()
    if pid is not None:
        LOG.debug("found browser pid %d", pid)
        if on_pid is not None:
            on_pid(pid)
    elif scanner.pid is None:
        LOG.debug("browser pid not found")
    return scanner.pid


def spawn_cross_boundary(
    command_line: str,
    env: Mapping[str, str] | None = None,
) -> Popen[bytes]:
    """Launch a Windows process via the intermediary bash script.
    The script always exits with 0, a failure to launch is only detectable
    by the absence of the sentinel on stderr.

    Args:
        command_line: Windows command line to execute.
        env: Environment for the intermediary process.

    Returns:
        Intermediary process.
    """
    LOG.debug("launching via wmic.exe '%s'", command_line)
    # pylint: disable=consider-using-with
    return Popen(
        [BASH, "-c", build_indirection_script(command_line)],
        env=env,
        shell=False,
        stderr=PIPE,
        stdin=DEVNULL,
        stdout=DEVNULL,
    )


def watch_stderr(
    proc: Popen[bytes],
    on_pid: Callable[[int], object],
) -> Thread:
    """Scan stderr of a process for the browser PID in a background thread.

    Args:
        proc: Process with stderr=PIPE.
        on_pid: Called once when the PID is found.

    Returns:
        Running thread, it exits when stderr is closed.
    """
    if proc.stderr is None:
        raise LaunchError(f"stderr of process {proc.pid} is not a pipe")
    watcher = Thread(
        target=discover_foreign_pid,
        args=(proc.stderr, on_pid),
        name=f"fflaunch-stderr-{proc.pid}",
        daemon=True,
    )
    watcher.start()
    return watcher
