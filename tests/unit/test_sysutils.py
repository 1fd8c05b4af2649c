# Copyright (C) 2025 Antonio Paolillo. All rights reserved.
# SPDX-License-Identifier: MIT
"""Unit tests for the system utilities running external commands."""

import sys
from pathlib import Path

import pytest

from flatbuild.sysutils import mkdir_for_path, shell_call, shell_capture


def test_shell_call_returns_status(capsys: pytest.CaptureFixture[str]) -> None:
    """The command is echoed before it runs, and its status returned."""
    assert shell_call([sys.executable, "-c", "raise SystemExit(3)"]) == 3

    out, _ = capsys.readouterr()
    assert out.startswith(f"[{sys.executable} -c")


def test_shell_capture_returns_status_and_output() -> None:
    status, output = shell_capture([sys.executable, "-c", "print('ctr'); raise SystemExit(4)"])

    assert status == 4
    assert output == "ctr"


def test_mkdir_for_path(tmp_path: Path) -> None:
    """Missing parents are created; a file in place of the parent is an error."""
    target = tmp_path / "out" / "build.sh"
    mkdir_for_path(target)
    assert target.parent.is_dir()

    blocker = tmp_path / "file"
    blocker.write_text("")
    with pytest.raises(ValueError):
        mkdir_for_path(blocker / "build.sh")
