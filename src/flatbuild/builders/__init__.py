# Copyright (C) 2024 Antonio Paolillo. All rights reserved.
# SPDX-License-Identifier: MIT

"""
This module provides the image ensurer: it guarantees that the toolchain image exists in local
storage, building it from a base image with buildah when it is missing.

Building goes through three steps on a working container: creation from the base image, package
installation, and commit under the target name. Any failing step aborts with an ImageBuildError;
the working container is left behind and no retry is attempted.
"""

import shlex
from typing import List

from flatbuild.builders.cmds import install_command
from flatbuild.config import BuildConfig
from flatbuild.engines import IMAGE_LIST_FORMAT, ContainerEngine, image_pattern


class ImageBuildError(RuntimeError):
    """
    Base class for the fatal failures of an image construction.
    """

    message = "Error building container image"
    exit_code = 255

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(self.message)


class BaseContainerError(ImageBuildError):
    """The working container could not be created from the base image."""

    message = "Error creating container base"


class PackageInstallError(ImageBuildError):
    """The package installation inside the working container failed."""

    message = "Error installing packages"


class CommitError(ImageBuildError):
    """The working container could not be committed as an image."""

    message = "Error commiting container image"


class ImageBuilder:
    """
    Builds a named image from a base image by installing packages into a working container.
    """

    def __init__(
        self,
        tag: str,
        base_image: str,
        package_manager: str,
    ) -> None:
        """
        Initializes the ImageBuilder.

        Parameters:
            tag (str): The name under which the built image is committed.
            base_image (str): The image the working container is created from.
            package_manager (str): The package manager available in the base image.
        """
        self._tag = tag
        self._base_image = base_image
        self._package_manager = package_manager
        self._packages: List[str] = []

    def add_packages(self, packages: List[str]) -> None:
        """
        Adds a list of packages to install using the configured package manager.

        Parameters:
            packages (List[str]): The packages to install.
        """
        self._packages.extend(packages)

    def get_install_command(self) -> List[str]:
        """
        Returns:
            List[str]: The command installing every added package.
        """
        return install_command(pkg_manager=self._package_manager, packages=self._packages)

    def build(self, engine: ContainerEngine) -> None:
        """
        Creates the working container, installs the packages and commits the image.

        Parameters:
            engine (ContainerEngine): The client used to drive the image builder.

        Raises:
            BaseContainerError: If no working container identifier was obtained.
            PackageInstallError: If the installation exits with a non-zero status.
            CommitError: If the commit exits with a non-zero status.
            ValueError: If the package manager is unsupported or no package was added.
        """
        # Unsupported package managers fail before any working container exists.
        command = self.get_install_command()

        container = engine.create_working_container(base_image=self._base_image)
        if not container:
            raise BaseContainerError(detail=self._base_image)

        status = engine.run_in_container(container=container, command=command)
        if status != 0:
            raise PackageInstallError(detail=f"exit status {status} in {container}")

        status = engine.commit(container=container, image=self._tag)
        if status != 0:
            raise CommitError(detail=f"exit status {status} for {container}")

    def get_script_lines(self, engine: ContainerEngine) -> List[str]:
        """
        Generates the shell lines building the image when it is missing, mirroring `build`.

        Parameters:
            engine (ContainerEngine): The client whose executables are referenced.

        Returns:
            List[str]: Lines of a POSIX shell script.
        """
        builder = shlex.quote(engine.builder)
        tag = shlex.quote(self._tag)
        install = shlex.join(self.get_install_command())
        image_format = shlex.quote(f"--format={IMAGE_LIST_FORMAT}")
        missing = shlex.quote(f"Can't find {self._tag} container image, creating it...")
        return [
            f"if ! {shlex.quote(engine.engine)} images {image_format} \\",
            f"    | grep -q -E {shlex.quote(image_pattern(self._tag))}; then",
            f"    echo {missing}",
            f"    CTR=$({builder} from {shlex.quote(self._base_image)})",
            '    if [ -z "${CTR}" ]; then',
            f'        echo "{BaseContainerError.message}"',
            "        exit 255",
            "    fi",
            f'    {builder} run "${{CTR}}" -- {install} || {{',
            f'        echo "{PackageInstallError.message}"',
            "        exit 255",
            "    }",
            f'    {builder} commit "${{CTR}}" {tag} || {{',
            f'        echo "{CommitError.message}"',
            "        exit 255",
            "    }",
            '    echo "Container image successfully built"',
            "fi",
        ]


def get_image_builder(config: BuildConfig) -> ImageBuilder:
    """
    Returns an ImageBuilder configured from a BuildConfig.

    Parameters:
        config (BuildConfig): The run configuration.

    Returns:
        ImageBuilder: A builder ready to produce `config.image_name`.
    """
    builder = ImageBuilder(
        tag=config.image_name,
        base_image=config.base_image,
        package_manager=config.package_manager,
    )
    builder.add_packages(config.packages)
    return builder


def ensure_image(config: BuildConfig, engine: ContainerEngine) -> bool:
    """
    Guarantees that the configured image exists in local storage, building it if absent.

    Parameters:
        config (BuildConfig): The run configuration.
        engine (ContainerEngine): The client used to query and drive the container tooling.

    Returns:
        bool: True if the image was built, False if it already existed.

    Raises:
        ImageBuildError: If any construction step failed.
    """
    if engine.image_exists(name=config.image_name):
        return False

    print(f"Can't find {config.image_name} container image, creating it...")
    get_image_builder(config=config).build(engine=engine)
    print("Container image successfully built")
    return True
