# Copyright (C) 2024 Antonio Paolillo. All rights reserved.
# SPDX-License-Identifier: MIT

"""
This module provides system-level utilities for the flatbuild package.
It includes functions for executing external commands (the container engine and the image builder)
and reporting their exit status, with or without capturing their output, and for preparing output
directories.
"""

import os
import shlex
import subprocess
from pathlib import Path
from typing import Dict, List, Tuple

PathType = str | Path
Environment = Dict[str, str] | None


def _print_cmd(
    command: List[str],
    environment: Environment,
) -> None:
    """
    Helper function to print the command line statement that will be executed, including the
    environment variables.

    Parameters:
        command (List[str]): The command to be executed as a list of strings.
        environment (Environment): A dictionary of environment variables to be set before executing
                                   the command.
    """
    if environment:
        printed_env = " ".join([f"{k}={v}" for k, v in environment.items()]) + " "
    else:
        printed_env = ""
    printed_cmd = " ".join(command)
    full_printed_cmd = printed_env + printed_cmd
    print(f"[{full_printed_cmd}]", flush=True)


def _split(command: List[str] | str) -> List[str]:
    if isinstance(command, str):
        return shlex.split(command)
    return [str(c) for c in command]


def shell_call(
    command: List[str] | str,
    current_dir: PathType | None = None,
    environment: Environment = None,
) -> int:
    """
    Executes a command attached to the current terminal and returns its exit status instead of
    raising when it fails.

    Parameters:
        command (List[str] | str): The command to execute, either as a string or a list of strings.
        current_dir (PathType | None): The directory in which to execute the command.
        environment (Environment): Environment variables to set for the command.

    Returns:
        int: The exit status of the command.
    """
    command = _split(command)
    _print_cmd(command=command, environment=environment)
    return subprocess.call(command, cwd=current_dir, env=environment)


def shell_capture(
    command: List[str] | str,
    current_dir: PathType | None = None,
    environment: Environment = None,
) -> Tuple[int, str]:
    """
    Executes a command, capturing its standard output. Standard error is left attached to the
    console so that diagnostics of the engine stay visible.

    Returns:
        Tuple[int, str]: The exit status and the stripped standard output of the command.
    """
    command = _split(command)
    _print_cmd(command=command, environment=environment)
    completed = subprocess.run(
        command,
        stdout=subprocess.PIPE,
        text=True,
        cwd=current_dir,
        env=environment,
        check=False,
    )
    return completed.returncode, completed.stdout.strip()


def mkdir(path: PathType) -> None:
    """
    Creates a directory at the specified path if it does not already exist.

    Parameters:
        path (PathType): The path where the directory should be created.
    """
    if not os.path.exists(path):
        os.makedirs(path)


def mkdir_for_path(path: PathType) -> None:
    """
    Ensures that the parent directory for a given path exists, creating it if necessary.

    Parameters:
        path (PathType): The path for which the parent directory needs verification or creation.

    Raises:
        ValueError: If the parent path exists and is not a directory.
    """
    path = Path(path)
    if path.is_dir():
        return

    parent_path = path.parent
    if parent_path.is_dir():
        return
    if parent_path.is_file():
        raise ValueError(f'Error, parent path is not a directory: "{parent_path}"')

    mkdir(path=parent_path)
