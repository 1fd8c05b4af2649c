# Copyright (C) 2025 Antonio Paolillo. All rights reserved.
# SPDX-License-Identifier: MIT
"""Unit tests for the image ensurer.

These tests drive `ensure_image` against a fake engine and verify:
- the three construction steps run in order when the image is missing,
- nothing is constructed when the image exists,
- each failing step stops the construction with its own error.
"""

import pytest

from flatbuild.builders import (
    BaseContainerError,
    CommitError,
    ImageBuildError,
    PackageInstallError,
    ensure_image,
)
from flatbuild.config import BuildConfig

CONSTRUCTION = [("buildah", "from"), ("buildah", "run"), ("buildah", "commit")]


def test_missing_image_is_built_in_order(fake_engine) -> None:
    """Create base, install packages, commit: exactly once each, in that order."""
    engine = fake_engine(images=["docker.io/library/alpine:edge"])

    assert ensure_image(config=BuildConfig(), engine=engine) is True

    assert engine.subcommands() == [("podman", "images")] + CONSTRUCTION
    assert engine.calls[1] == ["buildah", "from", "alpine:edge"]
    assert engine.calls[2] == [
        "buildah",
        "run",
        "alpine-working-container",
        "--",
        "apk",
        "add",
        "rust",
        "cargo",
        "dbus-dev",
        "eudev-dev",
        "python3",
        "libxcb-dev",
    ]
    assert engine.calls[3] == ["buildah", "commit", "alpine-working-container", "alpine-flatkvm"]


def test_existing_image_is_a_noop(fake_engine) -> None:
    """A present image triggers no construction at all."""
    engine = fake_engine(images=["localhost/alpine-flatkvm:latest"])

    assert ensure_image(config=BuildConfig(), engine=engine) is False
    assert engine.subcommands() == [("podman", "images")]


def test_similar_image_name_does_not_match(fake_engine) -> None:
    """Only the exact name counts as present, not names sharing a prefix."""
    engine = fake_engine(images=["localhost/alpine-flatkvm-old:latest"])

    assert ensure_image(config=BuildConfig(), engine=engine) is True
    assert engine.subcommands()[1:] == CONSTRUCTION


def test_unreachable_engine_means_missing_image(fake_engine) -> None:
    """A failing image listing leads to a construction attempt."""
    engine = fake_engine(
        images=["localhost/alpine-flatkvm:latest"],
        statuses={("podman", "images"): 125},
    )

    assert ensure_image(config=BuildConfig(), engine=engine) is True


def test_empty_base_container_stops_everything(fake_engine) -> None:
    """No container identifier: no install and no commit are attempted."""
    engine = fake_engine(container="")

    with pytest.raises(BaseContainerError) as excinfo:
        ensure_image(config=BuildConfig(), engine=engine)

    assert str(excinfo.value) == "Error creating container base"
    assert excinfo.value.exit_code != 0
    assert engine.subcommands() == [("podman", "images"), ("buildah", "from")]


def test_failed_install_skips_commit(fake_engine) -> None:
    """A non-zero install status aborts before the commit."""
    engine = fake_engine(statuses={("buildah", "run"): 1})

    with pytest.raises(PackageInstallError) as excinfo:
        ensure_image(config=BuildConfig(), engine=engine)

    assert str(excinfo.value) == "Error installing packages"
    assert ("buildah", "commit") not in engine.subcommands()


def test_failed_commit_is_fatal(fake_engine) -> None:
    """A non-zero commit status raises a CommitError with exit code 255."""
    engine = fake_engine(statuses={("buildah", "commit"): 125})

    with pytest.raises(ImageBuildError) as excinfo:
        ensure_image(config=BuildConfig(), engine=engine)

    assert isinstance(excinfo.value, CommitError)
    assert str(excinfo.value) == "Error commiting container image"
    assert excinfo.value.exit_code == 255


def test_unsupported_package_manager_touches_nothing(fake_engine) -> None:
    """Bad configuration is rejected before any working container is created."""
    engine = fake_engine()
    config = BuildConfig(package_manager="pacman")

    with pytest.raises(ValueError):
        ensure_image(config=config, engine=engine)

    assert engine.subcommands() == [("podman", "images")]


def test_progress_messages(fake_engine, capsys: pytest.CaptureFixture[str]) -> None:
    """Building prints what is happening, like the original script did."""
    ensure_image(config=BuildConfig(), engine=fake_engine())

    out, _ = capsys.readouterr()
    assert "Can't find alpine-flatkvm container image, creating it..." in out
    assert "Container image successfully built" in out
