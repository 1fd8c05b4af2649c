# Copyright (C) 2025 Antonio Paolillo. All rights reserved.
# SPDX-License-Identifier: MIT
"""
CLI interface for flatbuild.

This module provides a command-line interface to build the toolchain image and compile the
project of the current directory inside it. It exposes four subcommands:

- `build` (the default when no subcommand is given): ensures the image exists, building it with
  buildah if needed, then runs the build command in a throwaway container with the current
  directory mounted.
- `ensure-image`: only ensures the image exists.
- `script`: generates a standalone shell script performing the same steps.
- `scaffold`: generates a starter Python script calling the flatbuild API with the chosen
  configuration, so the user can customize it further.

Every option can also be given through a `FLATBUILD_<COMMAND>_<OPTION>` environment variable,
e.g. `FLATBUILD_BUILD_IMAGE`.
"""

import shlex
import sys
from pathlib import Path
from typing import Any, Callable, List, Optional

import black
import click
import isort

from flatbuild.builders import ImageBuildError, ensure_image, get_image_builder
from flatbuild.config import (
    DEFAULT_BASE_IMAGE,
    DEFAULT_IMAGE_NAME,
    DEFAULT_MOUNT_TARGET,
    DEFAULT_PACKAGE_MANAGER,
    DEFAULT_PACKAGES,
    BuildConfig,
)
from flatbuild.engines import ContainerEngine
from flatbuild.runners import get_build_runner, run_build
from flatbuild.sysutils import mkdir_for_path

# Make "-h" behave like "--help"
CONTEXT_SETTINGS = {
    "help_option_names": ["-h", "--help"],
    "auto_envvar_prefix": "FLATBUILD",
}

_CONFIG_OPTIONS = [
    click.option(
        "--image",
        default=DEFAULT_IMAGE_NAME,
        show_default=True,
        help="Name of the toolchain image to ensure and run",
    ),
    click.option(
        "--base-image",
        default=DEFAULT_BASE_IMAGE,
        show_default=True,
        help="Base image the toolchain image is built from",
    ),
    click.option(
        "--package-manager",
        type=click.Choice(["apk", "apt", "dnf"]),
        default=DEFAULT_PACKAGE_MANAGER,
        show_default=True,
        help="Package manager of the base image",
    ),
    click.option(
        "--packages",
        default="",
        help=f"Comma-separated packages to install (defaults to {','.join(DEFAULT_PACKAGES)})",
    ),
    click.option(
        "--workdir",
        default=DEFAULT_MOUNT_TARGET,
        show_default=True,
        help="Mount point of the current directory inside the build container",
    ),
    click.option("--engine", default="podman", show_default=True, help="Container engine"),
    click.option("--builder", default="buildah", show_default=True, help="Image builder"),
    click.option(
        "--tty/--no-tty",
        default=True,
        show_default=True,
        help="Allocate a TTY and keep stdin open for the build container",
    ),
]


def config_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorate a command with the options describing a BuildConfig."""
    for option in reversed(_CONFIG_OPTIONS):
        func = option(func)
    return func


def get_config(options: dict) -> BuildConfig:
    """
    Build the run configuration from the parsed command-line options.

    Args:
        options: The keyword arguments received by a command decorated with `config_options`.

    Returns:
        The corresponding BuildConfig, mounting the current directory.
    """
    selected_packages: List[str] = [
        p.strip() for p in options["packages"].split(",") if p.strip()
    ]
    return BuildConfig(
        image_name=options["image"],
        base_image=options["base_image"],
        package_manager=options["package_manager"],
        packages=selected_packages or list(DEFAULT_PACKAGES),
        mount_source=Path.cwd(),
        mount_target=options["workdir"],
        tty=options["tty"],
        interactive=options["tty"],
    )


def get_engine(options: dict) -> ContainerEngine:
    """Return the container engine client selected on the command line."""
    return ContainerEngine(engine=options["engine"], builder=options["builder"])


def _ensure(config: BuildConfig, engine: ContainerEngine) -> None:
    try:
        ensure_image(config=config, engine=engine)
    except ImageBuildError as error:
        click.echo(f"{error} ({error.detail})" if error.detail else str(error), err=True)
        sys.exit(error.exit_code)
    except ValueError as error:
        raise click.ClickException(str(error)) from error


def _exit_status(status: int) -> int:
    """Map a status killed by signal N (reported as -N) to the shell convention 128 + N."""
    return 128 - status if status < 0 else status


def _write_output(content: str, output: Optional[str], what: str) -> None:
    if output:
        try:
            mkdir_for_path(path=output)
        except ValueError as error:
            raise click.ClickException(str(error)) from error
        Path(output).write_text(content)
        click.echo(f"{what} written to {output}")
    else:
        click.echo(content)


@click.group(context_settings=CONTEXT_SETTINGS, invoke_without_command=True)
@click.version_option(
    package_name="flatbuild",
    prog_name="flatbuild",
    message="%(prog)s %(version)s",
)
@click.pass_context
def cli(ctx: click.Context) -> None:
    """flatbuild: build the toolchain image and compile the current project inside it."""
    if ctx.invoked_subcommand is None:
        ctx.invoke(build)


@cli.command()
@config_options
def build(**options: Any) -> None:
    """
    Ensure the toolchain image, then build the current directory in a container.

    Exits with 255 if the image could not be built, otherwise with the exit status of the
    containerized build.
    """
    config = get_config(options)
    engine = get_engine(options)

    _ensure(config=config, engine=engine)
    status = run_build(config=config, engine=engine)
    sys.exit(_exit_status(status))


@cli.command(name="ensure-image")
@config_options
def ensure_image_command(**options: Any) -> None:
    """Ensure the toolchain image exists, building it if it is missing."""
    _ensure(config=get_config(options), engine=get_engine(options))


@cli.command()
@config_options
@click.option("--output", type=click.Path(), help="Write script to file (stdout if omitted)")
def script(output: Optional[str], **options: Any) -> None:
    """
    Generate a standalone shell script performing the same steps as `build`.
    """
    config = get_config(options)
    engine = get_engine(options)

    try:
        image_lines = get_image_builder(config=config).get_script_lines(engine=engine)
    except ValueError as error:
        raise click.ClickException(str(error)) from error
    run_lines = get_build_runner(config=config).get_script_lines(engine=engine.engine)
    starting = f'Starting a container to run "{config.build_command[0]}"'

    lines: List[str] = (
        [
            "#!/bin/sh",
            f"# Build the {config.image_name} image if needed, then run the build in it.",
            "",
        ]
        + image_lines
        + [
            "",
            f"echo {shlex.quote(starting)}",
        ]
        + run_lines
    )
    _write_output(content="\n".join(lines) + "\n", output=output, what="Script")


@cli.command()
@config_options
@click.option("--output", type=click.Path(), help="Write scaffold to file (stdout if omitted)")
def scaffold(output: Optional[str], **options: Any) -> None:
    """
    Generate a starter flatbuild script instead of running.

    The generated script ensures the image and runs the build with the selected configuration.
    It can be saved to a file (via --output) or printed to stdout.
    """
    config = get_config(options)

    lines: List[str] = [
        "#!/usr/bin/env python3",
        '"""',
        "Build the toolchain image if needed and compile the current directory in it.",
        "",
        "Steps:",
        "1) Ensure the toolchain image exists, building it if missing.",
        "2) Run the build command in a container with the current directory mounted.",
        '"""',
        "",
        "import sys",
        "from flatbuild.runners import run_build",
        "from flatbuild.engines import ContainerEngine",
        "from flatbuild.config import BuildConfig",
        "from flatbuild.builders import ImageBuildError, ensure_image",
        "",
        f"IMAGE = {config.image_name!r}",
        f"BASE_IMAGE = {config.base_image!r}",
        f"PACKAGE_MANAGER = {config.package_manager!r}",
        f"PACKAGES = {config.packages!r}",
        f"WORKDIR = {config.mount_target!r}",
        f"BUILD_COMMAND = {config.build_command!r}",
        "",
        "def main() -> int:",
        '    """Ensure the image, then run the build and return its exit status."""',
        "    config = BuildConfig(",
        "        image_name=IMAGE,",
        "        base_image=BASE_IMAGE,",
        "        package_manager=PACKAGE_MANAGER,",
        "        packages=PACKAGES,",
        "        mount_target=WORKDIR,",
        "        build_command=BUILD_COMMAND,",
        f"        tty={config.tty},",
        f"        interactive={config.interactive},",
        "    )",
        f"    engine = ContainerEngine(engine={options['engine']!r}, "
        f"builder={options['builder']!r})",
        "",
        "    try:",
        "        ensure_image(config=config, engine=engine)",
        "    except ImageBuildError as error:",
        "        print(error)",
        "        return error.exit_code",
        "",
        "    return run_build(config=config, engine=engine)",
        "",
        'if __name__ == "__main__":',
        "    sys.exit(main())",
    ]

    content: str = "\n".join(lines) + "\n"

    content = isort.code(content, config=isort.Config(profile="black", line_length=100))
    content = black.format_str(
        content,
        mode=black.Mode(line_length=100, target_versions={black.TargetVersion.PY310}),
    )

    _write_output(content=content, output=output, what="Scaffold")


def main() -> None:
    """Entry point for the flatbuild CLI when installed as a script."""
    cli()


if __name__ == "__main__":
    main()
