# Copyright (C) 2024 Antonio Paolillo. All rights reserved.
# SPDX-License-Identifier: MIT

"""
Configuration of a flatbuild run.

`BuildConfig` gathers everything the image ensurer and the build runner need: the image to
produce, how to produce it, and how to run the build inside it. The defaults build the
`alpine-flatkvm` toolchain image and compile the flatkvm agent in release mode.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from flatbuild.sysutils import PathType

DEFAULT_IMAGE_NAME = "alpine-flatkvm"
DEFAULT_BASE_IMAGE = "alpine:edge"
DEFAULT_PACKAGE_MANAGER = "apk"
DEFAULT_PACKAGES = [
    "rust",
    "cargo",
    "dbus-dev",
    "eudev-dev",
    "python3",
    "libxcb-dev",
]
DEFAULT_MOUNT_TARGET = "/workdir"
DEFAULT_MOUNT_OPTIONS = "Z"
DEFAULT_BUILD_COMMAND = ["cargo", "build", "--release"]


@dataclass
class BuildConfig:
    """
    Explicit configuration passed to `ensure_image` and `run_build`.

    Attributes:
        image_name (str): Name under which the toolchain image is committed and looked up.
        base_image (str): Image reference the working container is created from.
        package_manager (str): Package manager available in the base image ('apk', 'apt', 'dnf').
        packages (List[str]): Packages installed in the working container.
        mount_source (PathType): Host directory bind-mounted into the build container.
        mount_target (str): Mount point inside the container, also used as working directory.
        mount_options (str): Volume options appended to the mount (e.g. 'Z' for SELinux).
        build_command (List[str]): Command run inside the build container.
        tty (bool): Whether to allocate a TTY for the build container.
        interactive (bool): Whether to keep stdin open for the build container.
    """

    image_name: str = DEFAULT_IMAGE_NAME
    base_image: str = DEFAULT_BASE_IMAGE
    package_manager: str = DEFAULT_PACKAGE_MANAGER
    packages: List[str] = field(default_factory=lambda: list(DEFAULT_PACKAGES))
    mount_source: PathType = field(default_factory=Path.cwd)
    mount_target: str = DEFAULT_MOUNT_TARGET
    mount_options: str = DEFAULT_MOUNT_OPTIONS
    build_command: List[str] = field(default_factory=lambda: list(DEFAULT_BUILD_COMMAND))
    tty: bool = True
    interactive: bool = True
