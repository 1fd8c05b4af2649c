# Copyright (C) 2024 Antonio Paolillo. All rights reserved.
# SPDX-License-Identifier: MIT

"""
This module turns a list of packages into the command that installs them with the package manager
of the base image. The commands are executed inside a working container by the image builder.
"""

from typing import List


def install_command(
    pkg_manager: str,
    packages: List[str],
) -> List[str]:
    """
    Generates the command installing the given packages with the specified package manager.

    Parameters:
        pkg_manager (str): The package manager to use ('apk', 'apt' or 'dnf').
        packages (List[str]): A list of package names to be installed.

    Returns:
        List[str]: The install command as a list of arguments.

    Raises:
        ValueError: If an unsupported package manager is specified or no package is given.
    """
    if not packages:
        raise ValueError("At least one package is required")

    match pkg_manager:
        case "apk":
            return ["apk", "add"] + list(packages)
        case "apt":
            return _add_pkg_apt(packages=packages)
        case "dnf":
            return ["dnf", "install", "-y"] + list(packages)
        case _:
            raise ValueError(f"Unsupported package manager: {pkg_manager}")


def _add_pkg_apt(packages: List[str]) -> List[str]:
    """
    Helper function to format an apt-get command to install specified packages.
    The package index must be refreshed first, hence the shell wrapper.
    """
    joined = " ".join(packages)
    cmd = (
        "apt-get update && "
        f"apt-get install -y --no-install-recommends {joined} && "
        "rm -rf /var/lib/apt/lists/*"
    )
    return ["sh", "-c", cmd]
