# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.
"""fflaunch profile manager"""

from __future__ import annotations

from json import dumps
from json import load as json_load
from logging import getLogger
from pathlib import Path
from shutil import copyfile, copytree, rmtree
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

LOG = getLogger(__name__)

PREFS = "".join(
    f"{line}\n"
    for line in (
        'user_pref("browser.shell.checkDefaultBrowser", false);',
        'user_pref("browser.bookmarks.restore_default_bookmarks", false);',
        'user_pref("dom.disable_open_during_load", false);',
        'user_pref("dom.max_script_run_time", 0);',
        'user_pref("dom.min_background_timeout_value", 10);',
        'user_pref("extensions.autoDisableScopes", 0);',
        'user_pref("browser.tabs.remote.autostart", false);',
        'user_pref("browser.tabs.remote.autostart.2", false);',
        'user_pref("extensions.enabledScopes", 15);',
    )
)


def build_prefs(prefs: Mapping[str, Any] | None = None) -> str:
    """Create prefs.js contents. The baseline preferences are always included.

    Args:
        prefs: Additional preferences, values must be JSON serializable.

    Returns:
        Preferences, one user_pref() statement per line.
    """
    if not prefs:
        return PREFS
    lines = [PREFS]
    for name, value in prefs.items():
        lines.append(f"user_pref({dumps(name)}, {dumps(value)});\n")
    return "".join(lines)


class Profile:
    """
    Browser profile management object.
    """

    __slots__ = ("path",)

    def __init__(
        self,
        path: Path,
        prefs: Mapping[str, Any] | None = None,
        extensions: Iterable[Path] | None = None,
        user_js: bool = False,
    ) -> None:
        """
        Args:
            path: Profile directory, created if missing.
            prefs: Additional preferences.
            extensions: Extensions to install.
            user_js: Also write user.js to the profile directory.
        """
        self.path: Path | None = path
        path.mkdir(parents=True, exist_ok=True)
        prefs_js = build_prefs(prefs)
        (path / "prefs.js").write_text(prefs_js)
        if user_js:
            (path / "user.js").write_text(prefs_js)
        if extensions is not None:
            self._copy_extensions(extensions, prefs_js)

    def __enter__(self) -> Profile:
        return self

    def __exit__(self, *exc: object) -> None:
        self.remove()

    def __str__(self) -> str:
        return str(self.path)

    def _copy_extensions(self, extensions: Iterable[Path], prefs_js: str) -> None:
        assert self.path
        ext_path = self.path / "extensions"
        ext_path.mkdir(exist_ok=True)
        (ext_path / "user.js").write_text(prefs_js)
        for ext in extensions:
            if ext.is_file():
                LOG.debug("installing extension '%s'", ext.name)
                copyfile(ext, ext_path / ext.name)
            elif ext.is_dir():
                # read manifest to see what the folder should be named
                ext_name = None
                try:
                    with (ext / "manifest.json").open("r") as manifest:
                        manifest_loaded_json = json_load(manifest)
                    for key in ("browser_specific_settings", "applications"):
                        if key in manifest_loaded_json:
                            ext_name = manifest_loaded_json[key]["gecko"]["id"]
                            break
                except (OSError, KeyError, TypeError, ValueError) as exc:
                    LOG.debug("Failed to parse manifest.json: %s", exc)
                if ext_name is None:
                    raise RuntimeError(
                        f"Failed to find extension id in manifest: '{ext}'"
                    )
                LOG.debug("installing extension '%s'", ext_name)
                copytree(ext, ext_path / ext_name)
            else:
                raise RuntimeError(f"Unknown extension: '{ext}'")

    def remove(self) -> None:
        """Remove the profile from the filesystem.

        Args:
            None

        Returns:
            None
        """
        if self.path is not None:
            if self.path.is_dir():
                LOG.debug("removing profile '%s'", self.path)
                rmtree(self.path, ignore_errors=True)
                if self.path.exists():
                    LOG.error("Failed to remove profile '%s'", self.path)
            self.path = None
