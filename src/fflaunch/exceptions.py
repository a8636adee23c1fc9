# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at http://mozilla.org/MPL/2.0/.
"""fflaunch exceptions"""


class LaunchError(Exception):
    """
    Raised when the browser cannot be launched
    """


class PathTranslationError(LaunchError):
    """
    Raised when a path cannot be translated between the Linux and Windows namespaces
    """


class TerminateError(Exception):
    """
    Raised when attempts to terminate the browser fail
    """
