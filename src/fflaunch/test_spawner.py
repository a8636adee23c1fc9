# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this file,
# You can obtain one at http://mozilla.org/MPL/2.0/.
"""spawner.py tests"""

from io import BytesIO
from os import environ
from pathlib import Path
from subprocess import PIPE, Popen
from sys import executable

from pytest import mark, raises

from .exceptions import LaunchError
from .spawner import (
    BASH,
    SENTINEL,
    PidScanner,
    build_browser_args,
    build_indirection_script,
    discover_foreign_pid,
    spawn_cross_boundary,
    watch_stderr,
)

STDERR = (
    "[GFX1-]: glxtest: libEGL missing ☃\n"
    "\n\nBROWSERBROWSERBROWSERBROWSER\n  debug me @ 4321\n\n"
    "ünïcödé noise\n"
).encode()

WMIC_OUTPUT = (
    "Executing (Win32_Process)->Create()\r\n"
    "Method execution successful.\r\n"
    "Out Parameters:\r\n"
    "instance of __PARAMETERS\r\n"
    "{\r\n"
    "\tProcessId = 1234;\r\n"
    "\tReturnValue = 0;\r\n"
    "};\r\n"
)


def test_pid_scanner_01():
    """test PidScanner with complete data"""
    scanner = PidScanner()
    assert scanner.feed(STDERR) == 4321
    assert scanner.pid == 4321
    # first match wins
    assert scanner.feed(f"{SENTINEL} debug me @ 99\n".encode()) is None
    assert scanner.close() is None
    assert scanner.pid == 4321


def test_pid_scanner_02():
    """test PidScanner with data split at every offset"""
    for offset in range(len(STDERR) + 1):
        scanner = PidScanner()
        found = [
            scanner.feed(STDERR[:offset]),
            scanner.feed(STDERR[offset:]),
            scanner.close(),
        ]
        assert [x for x in found if x is not None] == [4321], offset


def test_pid_scanner_03():
    """test PidScanner with data fed one byte at a time"""
    scanner = PidScanner()
    found = [scanner.feed(STDERR[i : i + 1]) for i in range(len(STDERR))]
    found.append(scanner.close())
    assert [x for x in found if x is not None] == [4321]


@mark.parametrize(
    "data, expected",
    [
        # sentinel at end of stream without newline
        (f"{SENTINEL} debug me @ 55".encode(), 55),
        # no sentinel
        (b"nothing to see here\n", None),
        (b"", None),
        # incomplete sentinel
        (b"BROWSERBROWSER debug me @ 12\n", None),
        (f"{SENTINEL} debug me @ \n".encode(), None),
        # invalid utf-8
        (b"\xff\xfe" + f"{SENTINEL}\tdebug me @ 7\n".encode(), 7),
        # long noise before sentinel
        (b"x" * 10000 + f"\n{SENTINEL} debug me @ 8;\n".encode(), 8),
    ],
)
def test_pid_scanner_04(data, expected):
    """test PidScanner edge cases"""
    scanner = PidScanner()
    scanner.feed(data)
    scanner.close()
    assert scanner.pid == expected


def test_build_browser_args():
    """test build_browser_args()"""
    assert build_browser_args("http://a", "/p") == [
        "http://a",
        "-profile",
        "/p",
        "-no-remote",
        "-wait-for-browser",
    ]
    assert build_browser_args(
        "http://a", "/p", headless=("-headless",), flags=("--x", "--y")
    )[-3:] == ["-headless", "--x", "--y"]


def test_build_indirection_script():
    """test build_indirection_script()"""
    script = build_indirection_script("C:\\firefox.exe it's -profile C:\\p")
    assert "wmic.exe process call create 'C:\\firefox.exe it'\"'\"'s -profile" in script
    assert f'echo >&2 "{SENTINEL} debug me @ $pid"' in script
    assert script.rstrip().endswith("exit 0")
    # braces are not format fields
    assert "${line#*ProcessId = }" in script


def test_discover_foreign_pid_01(mocker):
    """test discover_foreign_pid()"""
    callback = mocker.Mock()
    stream = BytesIO(STDERR + b"more data\n" * 1000)
    assert discover_foreign_pid(stream, on_pid=callback) == 4321
    callback.assert_called_once_with(4321)
    # stream is drained
    assert stream.read() == b""
    # sentinel in the final partial line
    callback.reset_mock()
    stream = BytesIO(f"abc\n{SENTINEL} debug me @ 3".encode())
    assert discover_foreign_pid(stream, on_pid=callback) == 3
    callback.assert_called_once_with(3)
    # not found
    callback.reset_mock()
    assert discover_foreign_pid(BytesIO(b"abc\n"), on_pid=callback) is None
    assert callback.call_count == 0
    # no callback
    assert discover_foreign_pid(BytesIO(STDERR)) == 4321


def test_watch_stderr_01(mocker):
    """test watch_stderr()"""
    callback = mocker.Mock()
    with Popen(
        [executable, "-c", f"import sys; sys.stderr.buffer.write({STDERR!r})"],
        stderr=PIPE,
    ) as proc:
        watcher = watch_stderr(proc, callback)
        watcher.join(timeout=60)
        assert not watcher.is_alive()
    callback.assert_called_once_with(4321)


def _fake_wmic(path, output, exit_code):
    """create a fake wmic.exe that records its arguments"""
    wmic = path / "wmic.exe"
    wmic.write_text(
        "#!/bin/sh\n"
        f"printf '%s\\n' \"$@\" > '{path / 'args.txt'}'\n"
        f"printf '{output}'\n"
        f"exit {exit_code}\n"
    )
    wmic.chmod(0o755)
    return {**environ, "PATH": f"{path}:{environ.get('PATH', '')}"}


@mark.skipif(not Path(BASH).is_file(), reason="Requires bash")
@mark.parametrize(
    "output, exit_code, expected",
    [
        # success
        (WMIC_OUTPUT.replace("\r", "\\r").replace("\n", "\\n"), 0, 1234),
        # failure
        ("ERROR:\\r\\nDescription = Invalid query\\r\\n", 1, None),
        # no output
        ("", 0, None),
    ],
)
def test_spawn_cross_boundary_01(tmp_path, output, exit_code, expected):
    """test spawn_cross_boundary() with fake wmic.exe"""
    env = _fake_wmic(tmp_path, output.replace("\t", "\\t"), exit_code)
    cmd_line = (
        '"C:\\Program Files\\Mozilla Firefox\\firefox.exe" http://a -profile C:\\p'
    )
    proc = spawn_cross_boundary(cmd_line, env=env)
    try:
        assert proc.stderr is not None
        assert discover_foreign_pid(proc.stderr) == expected
        # the script always succeeds
        assert proc.wait(timeout=60) == 0
    finally:
        proc.stderr.close()
    assert (tmp_path / "args.txt").read_text().splitlines() == [
        "process",
        "call",
        "create",
        cmd_line,
    ]


def test_watch_stderr_02(mocker):
    """test watch_stderr() without stderr pipe"""
    proc = mocker.Mock(pid=123, stderr=None)
    with raises(LaunchError, match="stderr of process 123 is not a pipe"):
        watch_stderr(proc, mocker.Mock())
