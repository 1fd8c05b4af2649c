# Copyright (C) 2024 Antonio Paolillo. All rights reserved.
# SPDX-License-Identifier: MIT

"""
This module defines the ContainerRunner class, which constructs and executes the engine `run`
command of the build step: a throwaway container of the toolchain image with the project
directory bind-mounted as its working directory, and the build command as its entry point.
"""

import shlex
from pathlib import Path
from typing import Dict, List

from flatbuild.config import BuildConfig
from flatbuild.engines import ContainerEngine
from flatbuild.sysutils import PathType


class ContainerRunner:
    """
    Provides the functionality to construct and execute container run commands based on the
    configured settings.
    """

    def __init__(
        self,
        image: str,
        command: List[str] | None = None,
        volumes: Dict[str, str] | None = None,
        workdir: PathType | None = None,
        tty: bool = True,
        interactive: bool = True,
    ) -> None:
        """
        Initializes a ContainerRunner.

        Parameters:
            image (str): The image to use for the container to run.
            command (List[str]): The command run in the container (the image default if None).
            volumes (Dict[str, str]): A dictionary mapping host paths to container mount specs,
                                      e.g. {"/src": "/workdir:Z"}.
            workdir (PathType): Optional working directory inside the container.
            tty (bool): Whether to allocate a TTY.
            interactive (bool): Whether to make the container interactive.
        """
        self._image = image
        self._command = command if command else []
        self._volumes = volumes if volumes else {}
        self._workdir = workdir
        self._tty = tty
        self._interactive = interactive

    def get_command(self, engine: str = "podman") -> List[str]:
        """
        Constructs the run command based on the current configuration.

        Parameters:
            engine (str): The container engine executable.

        Returns:
            List[str]: The run command as a list of arguments.
        """
        header = [engine, "run", "--rm"]
        tty = ["--tty"] if self._tty else []
        interactive = ["--interactive"] if self._interactive else []
        vol = [f"--volume={k}:{v}" for k, v in self._volumes.items()]
        wd = [f"--workdir={self._workdir}"] if self._workdir else []

        return header + tty + interactive + vol + wd + [self._image] + self._command

    def run(self, engine: ContainerEngine) -> int:
        """
        Executes the constructed run command.

        Parameters:
            engine (ContainerEngine): The client executing the command.

        Returns:
            int: The exit status of the containerized command.
        """
        return engine.execute(self.get_command(engine=engine.engine))

    def get_script_lines(self, engine: str = "podman") -> List[str]:
        """
        Generates the shell lines running the container, one option per line.

        Returns:
            List[str]: Lines of a POSIX shell script.
        """
        command = [shlex.quote(c) for c in self.get_command(engine=engine)]
        head = command[:2]
        body = command[2:-1]
        tail = command[-1:]

        first_line = [" ".join(head) + " \\"]
        other_lines = [f"    {c} \\" for c in body]
        last_line = [f"    {c}" for c in tail]
        return first_line + other_lines + last_line


def get_build_runner(config: BuildConfig) -> ContainerRunner:
    """
    Returns the runner of the build step described by a BuildConfig.

    Parameters:
        config (BuildConfig): The run configuration.

    Returns:
        ContainerRunner: A runner mounting `config.mount_source` at `config.mount_target`.
    """
    target = config.mount_target
    if config.mount_options:
        target = f"{target}:{config.mount_options}"
    source = Path(config.mount_source).resolve()

    return ContainerRunner(
        image=config.image_name,
        command=config.build_command,
        volumes={f"{source}": target},
        workdir=config.mount_target,
        tty=config.tty,
        interactive=config.interactive,
    )


def run_build(config: BuildConfig, engine: ContainerEngine) -> int:
    """
    Runs the build command in a container of the ensured image.

    Parameters:
        config (BuildConfig): The run configuration.
        engine (ContainerEngine): The client used to run the container.

    Returns:
        int: The exit status of the containerized build, unchanged.
    """
    program = config.build_command[0] if config.build_command else config.image_name
    print(f'Starting a container to run "{program}"')
    return get_build_runner(config=config).run(engine=engine)
