# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.
"""fflaunch helper utilities"""

from __future__ import annotations

from contextlib import suppress
from logging import getLogger
from os import environ
from pathlib import Path
from platform import release, system
from subprocess import STDOUT, CalledProcessError, TimeoutExpired, check_output
from typing import TYPE_CHECKING

from psutil import AccessDenied, NoSuchProcess, Process, wait_procs

from .exceptions import TerminateError

if TYPE_CHECKING:
    from collections.abc import Mapping

LOG = getLogger(__name__)


def is_wsl() -> bool:
    """Check if running inside a Windows Subsystem for Linux guest.

    Args:
        None

    Returns:
        True if running under WSL otherwise False.
    """
    if system() != "Linux":
        return False
    if "microsoft" in release().lower():
        return True
    try:
        proc_version = Path("/proc/version").read_text()
    except OSError:
        return False
    return "microsoft" in proc_version.lower()


def prepare_environment(
    env_mod: Mapping[str, str | None] | None = None,
) -> dict[str, str]:
    """Create environment that can be used when launching the browser.

    Args:
        env_mod: Environment modifier. Add, remove and update entries
                 in the prepared environment. Add/update by setting
                 value or remove entry by setting value to None.

    Returns:
        Environment to use when launching browser.
    """
    base: dict[str, str | None] = {}
    env = dict(environ)

    # make the launcher process report the browser process ID on stderr
    # https://wiki.mozilla.org/Platform/Integration/InjectEject/Launcher_Process/
    base["MOZ_DEBUG_BROWSER_PAUSE"] = "0"
    # apply environment modifications
    if env_mod is not None:
        base.update(env_mod)
    for env_name, env_value in base.items():
        if env_value is None:
            if env_name in env:
                LOG.debug("removing env var '%s'", env_name)
                del env[env_name]
            continue
        env[env_name] = env_value
    return env


def terminate_process(pid: int, timeout: float = 10) -> None:
    """Call terminate() on a process and its descendants. If terminate() fails
    try kill().

    Args:
        pid: Process ID of the process to terminate.
        timeout: Time in seconds to wait for processes to exit after each attempt.

    Returns:
        None
    """
    try:
        parent = Process(pid)
        procs = [parent, *parent.children(recursive=True)]
    except (AccessDenied, NoSuchProcess):
        LOG.debug("process %d is not running", pid)
        return

    use_kill = False
    while procs:
        LOG.debug(
            "calling %s on %d running process(es)",
            "kill()" if use_kill else "terminate()",
            len(procs),
        )
        for proc in procs:
            with suppress(AccessDenied, NoSuchProcess):
                if use_kill:
                    proc.kill()
                else:
                    proc.terminate()
        procs = wait_procs(procs, timeout=timeout)[1]
        if use_kill:
            break
        use_kill = True

    if procs:
        LOG.warning("Processes still running: %d", len(procs))
        for proc in procs:
            with suppress(AccessDenied, NoSuchProcess):
                LOG.warning("-> %d: %s (%s)", proc.pid, proc.name(), proc.status())
        raise TerminateError("Failed to terminate processes")


def taskkill(pid: int) -> bool:
    """Forcefully terminate a running Windows process. Exited processes are
    filtered out to avoid matching a recycled PID.

    Args:
        pid: Windows process ID.

    Returns:
        True if Taskkill.exe succeeded otherwise False.
    """
    cmd = ("Taskkill.exe", "/PID", str(pid), "/F", "/FI", "STATUS eq RUNNING")
    LOG.debug("running '%s'", " ".join(cmd))
    try:
        check_output(cmd, stderr=STDOUT, timeout=60)
    except (CalledProcessError, OSError, TimeoutExpired) as exc:
        LOG.debug("Taskkill.exe failed: %s", exc)
        return False
    return True
