"""
Shared test fixtures and pytest configuration.

Markers:
    @pytest.mark.subprocess: spawns tests/fake_qortex_server.py as a stdio child
    @pytest.mark.integration: requires a real qortex server via `uvx qortex mcp-serve`

Run subsets:
    pytest -m "not integration"       # everything runnable offline
    pytest -m integration             # only the real-server tests
"""

import shutil
from typing import Optional

import pytest

from qortex_vector.client import QortexMcpClient
from qortex_vector.transport.mock import MockTransport
from qortex_vector.vector import QortexVector


def _uvx_available() -> bool:
    """Check if uvx is on PATH (needed to launch qortex from PyPI)."""
    return shutil.which("uvx") is not None


# Cache the check at module level so it runs once per session
_UVX_OK: Optional[bool] = None


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "subprocess: spawns the fake qortex server as a child process")
    config.addinivalue_line("markers", "integration: requires a real qortex server (uvx qortex mcp-serve)")


def pytest_collection_modifyitems(config, items):
    """Auto-skip tests whose infrastructure requirements are not met."""
    global _UVX_OK

    if _UVX_OK is None:
        _UVX_OK = _uvx_available()

    skip_uvx = pytest.mark.skip(reason="uvx not available to launch qortex")

    for item in items:
        if "integration" in item.keywords and not _UVX_OK:
            item.add_marker(skip_uvx)


@pytest.fixture
def transport() -> MockTransport:
    return MockTransport()


@pytest.fixture
def qortex(transport: MockTransport) -> QortexVector:
    """QortexVector wired to a MockTransport; queue payloads on ``transport``."""
    return QortexVector(id="test-qortex", client=QortexMcpClient(transport=transport))
