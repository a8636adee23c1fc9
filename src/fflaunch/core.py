# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.
"""fflaunch module"""

from __future__ import annotations

import ntpath
import sys
from contextlib import suppress
from enum import IntEnum, unique
from logging import getLogger
from pathlib import Path
from subprocess import DEVNULL, PIPE, Popen, TimeoutExpired, list2cmdline
from tempfile import mkdtemp
from threading import Thread
from time import strftime
from typing import TYPE_CHECKING, Any, Callable
from uuid import uuid4

from psutil import AccessDenied, NoSuchProcess, Process

from .display import DISPLAYS, DisplayMode
from .exceptions import LaunchError, TerminateError
from .helpers import is_wsl, prepare_environment, taskkill, terminate_process
from .profile import Profile
from .resolver import ExecutableResolver
from .spawner import build_browser_args, spawn_cross_boundary, watch_stderr
from .targets import LAUNCHERS
from .translator import PathTranslator, is_foreign_path

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from .targets import LaunchTarget

LOG = getLogger(__name__)


def _defer_call(func: Callable[[], object]) -> None:
    """Run a callable outside of the current call stack."""
    Thread(target=func, name="fflaunch-deferred", daemon=True).start()


@unique
class LaunchState(IntEnum):
    """Lifecycle states of a BrowserLauncher"""

    IDLE = 0
    STARTING = 1
    RUNNING = 2
    KILLING = 3
    TERMINATED = 4


class LaunchArgs:
    """Browser configuration supplied by the harness.

    Attributes:
        profile: Profile directory to use (default: temporary directory).
        flags: Additional browser arguments.
        headless: Arguments that enable headless mode (overrides the target).
        extensions: Extensions to install.
        prefs: Additional preferences.
    """

    __slots__ = ("extensions", "flags", "headless", "prefs", "profile")

    def __init__(
        self,
        profile: Path | None = None,
        flags: Iterable[str] = (),
        headless: Iterable[str] | None = None,
        extensions: Iterable[Path] | None = None,
        prefs: Mapping[str, Any] | None = None,
    ) -> None:
        self.profile = profile
        self.flags = tuple(flags)
        self.headless = None if headless is None else tuple(headless)
        self.extensions = None if extensions is None else tuple(extensions)
        self.prefs = None if prefs is None else dict(prefs)


class ResolvedCommand:
    """Browser executable location.

    Attributes:
        local: Executable in the local namespace.
        foreign: Windows path of the executable when launching from WSL.
    """

    __slots__ = ("foreign", "local")

    def __init__(self, local: str, foreign: str | None = None) -> None:
        self.local = local
        self.foreign = foreign

    @property
    def cross_boundary(self) -> bool:
        return self.foreign is not None


class RunningLaunch:
    """State of a launched browser.

    Attributes:
        proc: Spawned process (the browser or the intermediary script).
        profile: Browser profile.
        cross_boundary: The browser is running as a Windows process.
        owns_profile: The profile was created by the launcher.
        foreign_pid: Browser PID reported on stderr.
        watcher: Thread scanning stderr for the browser PID.
    """

    __slots__ = (
        "cross_boundary",
        "foreign_pid",
        "owns_profile",
        "proc",
        "profile",
        "watcher",
    )

    def __init__(
        self,
        proc: Popen[bytes],
        profile: Profile,
        cross_boundary: bool = False,
        owns_profile: bool = False,
    ) -> None:
        self.cross_boundary = cross_boundary
        self.foreign_pid: int | None = None
        self.owns_profile = owns_profile
        self.proc = proc
        self.profile = profile
        self.watcher: Thread | None = None

    def set_foreign_pid(self, pid: int) -> None:
        """Record the browser PID, the first value wins.

        Args:
            pid: Browser PID.

        Returns:
            None
        """
        if self.foreign_pid is None:
            self.foreign_pid = pid


class BrowserLauncher:
    """BrowserLauncher manages launching and terminating a browser session.
    When running in a WSL guest the Windows browser is used if no Linux browser
    is available or if no display is available for a non-headless browser.
    """

    __slots__ = (
        "_args",
        "_defer",
        "_display",
        "_launch",
        "_resolver",
        "_state",
        "_target",
        "_temp_dir",
        "_translator",
        "_wsl",
    )

    def __init__(
        self,
        target: LaunchTarget,
        args: LaunchArgs | None = None,
        resolver: ExecutableResolver | None = None,
        temp_dir: Path | None = None,
        display_mode: DisplayMode = DisplayMode.DEFAULT,
        defer: Callable[[Callable[[], object]], None] | None = None,
        translator: PathTranslator | None = None,
    ) -> None:
        """
        Args:
            target: Browser channel to launch.
            args: Browser configuration.
            resolver: Executable resolver (default: resolver for this platform).
            temp_dir: Caller managed directory used as profile when args.profile
                      is not set.
            display_mode: Display mode to use.
            defer: Used to run the kill() completion callback.
            translator: Path translator (default: wslpath when running in WSL).
        """
        self._wsl = is_wsl()
        if translator is None and self._wsl:
            translator = PathTranslator()
        self._args = args or LaunchArgs()
        self._defer = defer or _defer_call
        self._display = DISPLAYS[display_mode]()
        self._launch: RunningLaunch | None = None
        self._resolver = resolver or ExecutableResolver(translator=translator)
        self._state = LaunchState.IDLE
        self._target = target
        self._temp_dir = temp_dir
        self._translator = translator

    def __enter__(self) -> BrowserLauncher:
        return self

    def __exit__(self, *exc: object) -> None:
        self.kill()

    @property
    def foreign_pid(self) -> int | None:
        """Browser PID reported by the browser or the intermediary script.

        Args:
            None

        Returns:
            Browser PID or None if it has not been discovered.
        """
        return self._launch.foreign_pid if self._launch is not None else None

    @property
    def headless(self) -> tuple[str, ...]:
        if self._args.headless is not None:
            return self._args.headless
        return self._target.headless

    @property
    def launch_info(self) -> RunningLaunch | None:
        return self._launch

    @property
    def state(self) -> LaunchState:
        return self._state

    @property
    def target(self) -> LaunchTarget:
        return self._target

    def is_running(self) -> bool:
        """Check if the spawned process is running. When launching from WSL this
        is the intermediary script which exits once the browser is started.

        Args:
            None

        Returns:
            True if the spawned process is running otherwise False.
        """
        return self._launch is not None and self._launch.proc.poll() is None

    def kill(self, done: Callable[[], object] | None = None) -> None:
        """Terminate the browser and the intermediary process (if any). Failures
        are logged and ignored. After kill() the launcher cannot be reused.

        Args:
            done: Called (outside of this call) once teardown is complete.

        Returns:
            None
        """
        if self._state == LaunchState.TERMINATED:
            LOG.debug("kill() call ignored")
        else:
            LOG.debug("kill() called")
            self._state = LaunchState.KILLING
            launch, self._launch = self._launch, None
            if launch is not None:
                try:
                    self._terminate(launch)
                except Exception:  # pylint: disable=broad-except
                    LOG.exception("Failed to terminate browser")
            try:
                self._display.close()
            except Exception:  # pylint: disable=broad-except
                LOG.exception("Failed to close display")
            self._state = LaunchState.TERMINATED
        if done is not None:
            self._defer(done)

    def resolve_command(self) -> ResolvedCommand:
        """Find the browser executable and decide where it will run.

        Args:
            None

        Returns:
            Browser executable location.
        """
        local = self._resolver.resolve(self._target)
        if self._wsl:
            assert self._translator is not None
            foreign = None
            if local is not None and is_foreign_path(local):
                # explicitly requested Windows browser using a Windows path
                LOG.info("WSL: using Windows browser")
                return ResolvedCommand(self._translator.to_local(local), local)
            if local is not None and local.lower().endswith(".exe"):
                # explicitly requested Windows browser
                foreign = local
            elif local is None:
                LOG.debug("WSL: Linux browser not found")
                foreign = self._resolver.resolve_foreign(self._target)
            elif not self.headless and not self._display.graphical:
                # a non-headless browser requires DISPLAY on Linux
                LOG.debug("WSL: DISPLAY is not available")
                foreign = self._resolver.resolve_foreign(self._target)
            if foreign is not None:
                LOG.info("WSL: using Windows browser")
                return ResolvedCommand(
                    foreign, self._translator.to_foreign_command(foreign)
                )
        if local is None:
            raise LaunchError(f"Cannot find executable for '{self._target.name}'")
        return ResolvedCommand(local)

    def start(self, url: str) -> None:
        """Launch a new browser process.

        Args:
            url: URL to open.

        Returns:
            None
        """
        if self._state != LaunchState.IDLE:
            raise LaunchError(f"Cannot start, launcher is {self._state.name}")
        self._state = LaunchState.STARTING
        try:
            command = self.resolve_command()
            if command.cross_boundary:
                launch = self._start_cross_boundary(command, url)
            else:
                launch = self._start_local(command, url)
        except BaseException:
            self._state = LaunchState.IDLE
            raise
        launch.watcher = watch_stderr(launch.proc, launch.set_foreign_pid)
        self._launch = launch
        self._state = LaunchState.RUNNING
        LOG.debug("spawned pid %d", launch.proc.pid)

    def _start_cross_boundary(
        self, command: ResolvedCommand, url: str
    ) -> RunningLaunch:
        assert command.foreign is not None
        assert self._translator is not None
        if self._args.profile is not None:
            profile_path = Path(self._args.profile)
            foreign_profile = None
            owned = False
        else:
            # the Windows browser cannot use the WSL temporary directory
            foreign_profile = ntpath.join(
                self._translator.foreign_temp_dir(), f"fflaunch-{uuid4().hex}"
            )
            profile_path = Path(self._translator.to_local(foreign_profile))
            owned = True
        profile = Profile(
            profile_path,
            prefs=self._args.prefs,
            extensions=self._args.extensions,
            user_js=True,
        )
        try:
            if foreign_profile is None:
                foreign_profile = self._translator.to_foreign(str(profile_path))
            command_line = list2cmdline(
                [
                    command.foreign,
                    *build_browser_args(
                        url, foreign_profile, self.headless, self._args.flags
                    ),
                ]
            )
            proc = spawn_cross_boundary(
                command_line, env=prepare_environment(self._display.env)
            )
        except Exception:
            if owned:
                profile.remove()
            raise
        return RunningLaunch(proc, profile, cross_boundary=True, owns_profile=owned)

    def _start_local(self, command: ResolvedCommand, url: str) -> RunningLaunch:
        if self._args.profile is not None:
            profile_path = Path(self._args.profile)
            owned = False
        elif self._temp_dir is not None:
            profile_path = Path(self._temp_dir)
            owned = False
        else:
            profile_path = Path(mkdtemp(prefix=strftime("fflaunch_%Y%m%d-%H%M%S_")))
            owned = True
        profile = Profile(
            profile_path, prefs=self._args.prefs, extensions=self._args.extensions
        )
        # if a python script is passed use 'sys.executable' as the binary
        # this is used by the test framework
        cmd: list[str] = []
        if command.local.lower().endswith(".py"):
            cmd.append(sys.executable)
        cmd.append(command.local)
        cmd.extend(
            build_browser_args(
                url, str(profile_path), self.headless, self._args.flags
            )
        )
        LOG.debug("launching '%s'", " ".join(cmd))
        try:
            # pylint: disable=consider-using-with
            proc = Popen(
                cmd,
                env=prepare_environment(self._display.env),
                shell=False,
                stderr=PIPE,
                stdin=DEVNULL,
                stdout=DEVNULL,
            )
        except Exception:
            if owned:
                profile.remove()
            raise
        return RunningLaunch(proc, profile, owns_profile=owned)

    @staticmethod
    def _terminate(launch: RunningLaunch) -> None:
        """Terminate the browser and remove the profile if possible.

        Args:
            launch: Launch to terminate.

        Returns:
            None
        """
        pid = launch.foreign_pid
        if pid is None:
            # the browser may still be running if the spawned process is a
            # launcher or the intermediary script
            LOG.debug("browser pid is unknown")
        elif launch.cross_boundary:
            taskkill(pid)
        elif pid != launch.proc.pid:
            with suppress(AccessDenied, NoSuchProcess):
                LOG.debug("terminating browser pid %d", pid)
                Process(pid).terminate()

        if launch.proc.poll() is None:
            try:
                terminate_process(launch.proc.pid)
            except TerminateError as exc:
                LOG.warning("Failed to terminate process: %s", exc)
        with suppress(TimeoutExpired):
            launch.proc.wait(timeout=10)
        if launch.watcher is not None:
            launch.watcher.join(timeout=10)
            if launch.watcher.is_alive():
                LOG.debug("stderr watcher is still running")
            elif launch.proc.stderr is not None:
                launch.proc.stderr.close()

        # a running Windows browser would still be using the profile
        if launch.owns_profile and (pid is not None or not launch.cross_boundary):
            launch.profile.remove()

    def wait(self, timeout: float | None = None) -> bool:
        """Wait for the spawned process to exit.

        Args:
            timeout: The maximum amount of time in seconds to wait or
                     None (wait indefinitely).

        Returns:
            True if the process exits before timeout expires otherwise False.
        """
        if self._launch is not None:
            try:
                self._launch.proc.wait(timeout=timeout)
            except TimeoutExpired:
                return False
        return True


def create_launcher(name: str, **kwargs: Any) -> BrowserLauncher:
    """Create a BrowserLauncher by launcher name (Firefox, FirefoxHeadless...).

    Args:
        name: Launcher name. See targets.LAUNCHERS.
        kwargs: Passed to BrowserLauncher.

    Returns:
        A new BrowserLauncher.
    """
    try:
        target = LAUNCHERS[name]
    except KeyError:
        raise LaunchError(f"Unknown launcher '{name}'") from None
    return BrowserLauncher(target, **kwargs)
