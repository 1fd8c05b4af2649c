# Copyright (C) 2025 Antonio Paolillo. All rights reserved.
# SPDX-License-Identifier: MIT
"""
Pytest configuration for flatbuild tests.

Registers custom markers:
- integration: requires podman and buildah
- slow: long build/pull

Provides a `fake_engine` factory fixture: a ContainerEngine whose external commands are recorded
instead of executed, with scripted results.
"""

from typing import Callable, Dict, List, Tuple

import pytest

from flatbuild.engines import ContainerEngine


class FakeEngine(ContainerEngine):
    """A ContainerEngine recording every command and answering from scripted results."""

    def __init__(
        self,
        images: List[str] | None = None,
        container: str = "alpine-working-container",
        statuses: Dict[Tuple[str, str], int] | None = None,
    ) -> None:
        super().__init__(engine="podman", builder="buildah")
        self.images = images if images else []
        self.container = container
        self.statuses = statuses if statuses else {}
        self.calls: List[List[str]] = []

    def _call(self, command: List[str]) -> int:
        self.calls.append(command)
        return self.statuses.get((command[0], command[1]), 0)

    def _capture(self, command: List[str]) -> Tuple[int, str]:
        self.calls.append(command)
        if command[1] == "images":
            return self.statuses.get(("podman", "images"), 0), "\n".join(self.images)
        if command[1] == "from":
            return (0, self.container) if self.container else (125, "")
        raise AssertionError(f"unexpected captured command: {command}")

    def subcommands(self) -> List[Tuple[str, str]]:
        """The (tool, subcommand) pairs invoked so far, in order."""
        return [(c[0], c[1]) for c in self.calls]


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers so --strict-markers doesn’t error."""
    config.addinivalue_line("markers", "integration: requires podman and buildah")
    config.addinivalue_line("markers", "slow: long build/pull")


@pytest.fixture
def fake_engine() -> Callable[..., FakeEngine]:
    """Factory building FakeEngine instances with the given scripted results."""
    return FakeEngine
