#!/usr/bin/env python
# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.
"""setuptools install script"""
from os.path import dirname, join as pathjoin
from setuptools import setup

if __name__ == "__main__":
    with open(pathjoin(dirname(__file__), "README.md"), "r") as infp:
        README = infp.read()
    setup(
        classifiers=[
            "Intended Audience :: Developers",
            "Topic :: Software Development :: Testing",
            "License :: OSI Approved :: Mozilla Public License 2.0 (MPL 2.0)",
            "Operating System :: MacOS",
            "Operating System :: Microsoft :: Windows",
            "Operating System :: POSIX :: Linux",
            "Programming Language :: Python :: 3",
        ],
        description="Launch Firefox and track the browser process, including "
        "Windows builds started from WSL",
        entry_points={"console_scripts": ["fflaunch = fflaunch.main:main"]},
        extras_require={
            "test": [
                "pytest",
                "pytest-cov",
                "pytest-mock",
            ]
        },
        install_requires=[
            "psutil >= 5.9.0",
            "xvfbwrapper >= 0.2.9; sys_platform == 'linux'",
        ],
        keywords="automation firefox launcher test testing wsl",
        license="MPL 2.0",
        long_description=README,
        long_description_content_type="text/markdown",
        maintainer="Mozilla Fuzzing Team",
        name="fflaunch",
        package_dir={"": "src"},
        packages=["fflaunch"],
        package_data={"fflaunch": ["resources/*.py"]},
        python_requires=">=3.9",
        version="0.1.0",
    )
