# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this file,
# You can obtain one at http://mozilla.org/MPL/2.0/.
"""helpers.py tests"""

from subprocess import CalledProcessError, Popen, TimeoutExpired
from sys import executable

from psutil import NoSuchProcess, Process
from pytest import mark, raises

from .exceptions import TerminateError
from .helpers import is_wsl, prepare_environment, taskkill, terminate_process


@mark.parametrize(
    "system, release, proc_version, expected",
    [
        ("Windows", "10", None, False),
        ("Darwin", "23.1.0", None, False),
        ("Linux", "5.15.90.1-microsoft-standard-WSL2", None, True),
        ("Linux", "4.4.0-19041-Microsoft", None, True),
        ("Linux", "6.5.0-generic", "Linux version 6.5.0 (gcc)", False),
        ("Linux", "6.5.0", "Linux version 6.5.0-microsoft-standard", True),
        ("Linux", "6.5.0", OSError("test"), False),
    ],
)
def test_is_wsl(mocker, system, release, proc_version, expected):
    """test is_wsl()"""
    mocker.patch("fflaunch.helpers.system", autospec=True, return_value=system)
    mocker.patch("fflaunch.helpers.release", autospec=True, return_value=release)
    fake_read = mocker.patch("fflaunch.helpers.Path.read_text", autospec=True)
    if isinstance(proc_version, Exception):
        fake_read.side_effect = proc_version
    else:
        fake_read.return_value = proc_version
    assert is_wsl() == expected


def test_prepare_environment_01(mocker):
    """test prepare_environment()"""
    mocker.patch.dict(
        "fflaunch.helpers.environ",
        {"MOZ_DEBUG_BROWSER_PAUSE": "10", "RM_ME": "1", "KEEP": "1"},
        clear=True,
    )
    env = prepare_environment()
    assert env["MOZ_DEBUG_BROWSER_PAUSE"] == "0"
    assert env["RM_ME"] == "1"
    env = prepare_environment({"RM_ME": None, "MISSING": None, "DISPLAY": ":9"})
    assert env == {"MOZ_DEBUG_BROWSER_PAUSE": "0", "KEEP": "1", "DISPLAY": ":9"}
    # the parent environment is unchanged
    assert "DISPLAY" not in prepare_environment()


def test_terminate_process_01():
    """test terminate_process() with running process"""
    with Popen([executable, "-c", "import time; time.sleep(60)"]) as proc:
        terminate_process(proc.pid, timeout=10)
        assert proc.wait(timeout=10) is not None
    # already exited
    terminate_process(proc.pid)


def test_terminate_process_02(mocker):
    """test terminate_process() with missing process"""
    mocker.patch(
        "fflaunch.helpers.Process", autospec=True, side_effect=NoSuchProcess(1)
    )
    fake_wait = mocker.patch("fflaunch.helpers.wait_procs", autospec=True)
    terminate_process(1)
    assert fake_wait.call_count == 0


def test_terminate_process_03(mocker):
    """test terminate_process() failure"""
    proc = mocker.Mock(spec_set=Process, pid=123)
    proc.children.return_value = []
    proc.name.return_value = "firefox"
    proc.status.return_value = "zombie"
    mocker.patch("fflaunch.helpers.Process", autospec=True, return_value=proc)
    fake_wait = mocker.patch(
        "fflaunch.helpers.wait_procs", autospec=True, return_value=([], [proc])
    )
    with raises(TerminateError, match="Failed to terminate processes"):
        terminate_process(123, timeout=0)
    assert fake_wait.call_count == 2
    assert proc.terminate.call_count == 1
    assert proc.kill.call_count == 1


@mark.parametrize(
    "side_effect, expected",
    [
        (None, True),
        (CalledProcessError(128, "Taskkill.exe"), False),
        (OSError("test"), False),
        (TimeoutExpired("Taskkill.exe", 60), False),
    ],
)
def test_taskkill(mocker, side_effect, expected):
    """test taskkill()"""
    fake_run = mocker.patch(
        "fflaunch.helpers.check_output", autospec=True, side_effect=side_effect
    )
    assert taskkill(4321) == expected
    assert fake_run.call_args[0][0] == (
        "Taskkill.exe",
        "/PID",
        "4321",
        "/F",
        "/FI",
        "STATUS eq RUNNING",
    )
