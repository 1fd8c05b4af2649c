# Copyright (C) 2024 Antonio Paolillo. All rights reserved.
# SPDX-License-Identifier: MIT

"""
This module defines the ContainerEngine class, the single place where flatbuild invokes the
container tooling: the engine (podman or docker) that lists images and runs containers, and the
image builder (buildah) that creates, mutates and commits working containers.

Image builders and runners receive a ContainerEngine explicitly, which lets tests substitute a
recording fake by overriding `_call` and `_capture`.
"""

import re
from typing import List, Tuple

from flatbuild.sysutils import shell_call, shell_capture

IMAGE_LIST_FORMAT = "{{.Repository}}:{{.Tag}}"
ERE_SPECIAL_CHARS = set("\\.[]()*+?{}|^$")


def with_default_tag(name: str) -> str:
    """
    Appends the implicit 'latest' tag to an image name that carries no tag.

    Parameters:
        name (str): An image name, possibly with a registry prefix and a tag.

    Returns:
        str: The name with an explicit tag.
    """
    last_component = name.rsplit("/", 1)[-1]
    if ":" in last_component:
        return name
    return f"{name}:latest"


def image_pattern(name: str) -> str:
    """
    Returns the extended regular expression matching the listed references of an image: the name
    with its tag, alone or after any registry or namespace prefix. The expression is valid both
    for Python's `re` and for `grep -E`.

    Parameters:
        name (str): The image name to look for.

    Returns:
        str: The anchored pattern.
    """
    escaped = "".join(f"\\{c}" if c in ERE_SPECIAL_CHARS else c for c in with_default_tag(name))
    return f"(^|/){escaped}$"


class ContainerEngine:
    """
    A thin client over the container engine and image builder command line tools.
    """

    def __init__(
        self,
        engine: str = "podman",
        builder: str = "buildah",
    ) -> None:
        """
        Initializes the client with the names of the tools to invoke.

        Parameters:
            engine (str): The container engine executable (lists images, runs containers).
            builder (str): The image builder executable (working containers and commits).
        """
        self._engine = engine
        self._builder = builder

    @property
    def engine(self) -> str:
        """The container engine executable."""
        return self._engine

    @property
    def builder(self) -> str:
        """The image builder executable."""
        return self._builder

    def _call(self, command: List[str]) -> int:
        return shell_call(command=command)

    def _capture(self, command: List[str]) -> Tuple[int, str]:
        return shell_capture(command=command)

    def list_images(self) -> List[str]:
        """
        Lists the references of the images present in local storage.

        An engine that cannot be queried yields an empty listing, so that the image is considered
        absent and the subsequent build step reports the actual failure.

        Returns:
            List[str]: Image references formatted as 'repository:tag'.
        """
        status, output = self._capture(
            [self._engine, "images", f"--format={IMAGE_LIST_FORMAT}"],
        )
        if status != 0:
            return []
        return [line.strip() for line in output.splitlines() if line.strip()]

    def image_exists(self, name: str) -> bool:
        """
        Checks whether an image with the given name is present in local storage.

        A reference matches when it equals the name (with 'latest' assumed if no tag is given),
        possibly prefixed by a registry or namespace such as 'localhost/'.

        Parameters:
            name (str): The image name to look for.

        Returns:
            bool: True if a matching image exists.
        """
        pattern = re.compile(image_pattern(name))
        return any(pattern.search(reference) for reference in self.list_images())

    def create_working_container(self, base_image: str) -> str:
        """
        Instantiates a working container from a base image.

        Parameters:
            base_image (str): The image reference to start from.

        Returns:
            str: The identifier of the working container, or an empty string if none was created.
        """
        status, output = self._capture([self._builder, "from", base_image])
        if status != 0 or not output:
            return ""
        return output.splitlines()[-1].strip()

    def run_in_container(self, container: str, command: List[str]) -> int:
        """
        Executes a command inside a working container.

        Parameters:
            container (str): The working container identifier.
            command (List[str]): The command to execute.

        Returns:
            int: The exit status of the command.
        """
        return self._call([self._builder, "run", container, "--"] + command)

    def commit(self, container: str, image: str) -> int:
        """
        Commits the filesystem of a working container as a new image.

        Parameters:
            container (str): The working container identifier.
            image (str): The name of the image to create.

        Returns:
            int: The exit status of the commit.
        """
        return self._call([self._builder, "commit", container, image])

    def execute(self, command: List[str]) -> int:
        """
        Executes a fully constructed engine command (e.g. a 'run' built by a ContainerRunner).

        Parameters:
            command (List[str]): The command, starting with the engine executable.

        Returns:
            int: The exit status of the command.
        """
        return self._call(command)
