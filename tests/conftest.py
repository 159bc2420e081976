"""Pytest fixtures for toolhost tests."""

import os
import sys

import pytest

from toolhost.sandbox.permissions import SandboxLevel, SandboxPermissions
from toolhost.tools.context import ToolContext
from toolhost.tracking import DiffTracker

HAS_PTY = os.name == "posix" and sys.platform != "cygwin"


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "pty: marks tests that spawn real processes in a pseudo-terminal",
    )


def pytest_collection_modifyitems(config, items):
    """Skip PTY tests where no POSIX pty is available."""
    if HAS_PTY:
        return

    skip_pty = pytest.mark.skip(reason="POSIX pty not available on this platform")
    for item in items:
        if "pty" in item.keywords:
            item.add_marker(skip_pty)


@pytest.fixture
def workspace(tmp_path):
    """Resolved temporary directory used as the workspace root."""
    return tmp_path.resolve()


@pytest.fixture
def tool_context(workspace) -> ToolContext:
    """Context with workspace-write access rooted at the temp directory."""
    return ToolContext(
        working_dir=str(workspace),
        sandbox=SandboxPermissions(SandboxLevel.WORKSPACE_WRITE, str(workspace)),
    )


@pytest.fixture
def tracker() -> DiffTracker:
    return DiffTracker()
