"""
Shared fixtures: a throwaway site root with a plugin directory
"""

import os
import stat
from pathlib import Path

import pytest

from zs.config import AppSettings


def plugin_write(site: Path, name: str, body: str, executable: bool = True) -> Path:
    """Write a file into the site's .zs directory (a shell script by default)"""
    path = site / ".zs" / name
    path.parent.mkdir(parents=True, exist_ok=True)
    if executable:
        path.write_text("#!/bin/sh\n" + body + "\n")
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    else:
        path.write_text(body)
    return path


def source_write(site: Path, name: str, content: str, mtime: float = None) -> Path:
    """Write a source file, optionally pinning its modification time"""
    path = site / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


@pytest.fixture
def site(tmp_path: Path) -> Path:
    """Empty site root with an empty plugin directory"""
    (tmp_path / ".zs").mkdir()
    return tmp_path


@pytest.fixture
def settings() -> AppSettings:
    """Default settings, independent of the host's ZSCONF_* variables"""
    return AppSettings(
        plugin_dir=".zs",
        output_dir=".pub",
        header_format="colon",
        strict_mode=False,
        tool_path="/usr/local/bin/zs",
        poll_interval=0.01,
    )
