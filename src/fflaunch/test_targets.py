# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this file,
# You can obtain one at http://mozilla.org/MPL/2.0/.
"""targets.py tests"""

from pytest import mark

from .targets import (
    FIREFOX,
    FIREFOX_NIGHTLY,
    HEADLESS_PARAMS,
    LAUNCHERS,
    LaunchTarget,
    make_headless,
)


def test_launchers_01():
    """test LAUNCHERS"""
    assert sorted(LAUNCHERS) == [
        "Firefox",
        "FirefoxAurora",
        "FirefoxAuroraHeadless",
        "FirefoxDeveloper",
        "FirefoxDeveloperHeadless",
        "FirefoxHeadless",
        "FirefoxNightly",
        "FirefoxNightlyHeadless",
    ]
    for name, target in LAUNCHERS.items():
        assert target.name == name
        assert target.linux_names == ("firefox",)
        if name.endswith("Headless"):
            assert target.headless == HEADLESS_PARAMS
        else:
            assert not target.headless


@mark.parametrize("name", ["Firefox", "FirefoxAurora", "FirefoxNightly"])
def test_launchers_02(name):
    """test headless variants share the lookup tables"""
    target = LAUNCHERS[name]
    headless = LAUNCHERS[f"{name}Headless"]
    assert headless.env_cmd == target.env_cmd
    assert headless.mac_names == target.mac_names
    assert headless.win_names == target.win_names


def test_make_headless():
    """test make_headless()"""
    target = make_headless(FIREFOX_NIGHTLY, params=("-headless",))
    assert target.name == "FirefoxNightlyHeadless"
    assert target.env_cmd == "FIREFOX_NIGHTLY_BIN"
    assert target.win_names == ("Nightly", "Firefox Nightly")
    assert target.headless == ("-headless",)
    assert repr(target) == "<LaunchTarget 'FirefoxNightlyHeadless'>"
    # the source is unchanged
    assert not FIREFOX_NIGHTLY.headless


def test_launch_target():
    """test LaunchTarget"""
    target = LaunchTarget(
        "Custom", "CUSTOM_BIN", ["a"], iter(["b", "c"]), linux_names=["d"]
    )
    assert target.mac_names == ("a",)
    assert target.win_names == ("b", "c")
    assert target.linux_names == ("d",)
    assert FIREFOX.env_cmd == "FIREFOX_BIN"
