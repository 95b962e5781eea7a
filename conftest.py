"""
Pytest configuration for modgraph test suite.

Integration tests invoke a real C/C++ toolchain and are skipped unless the
--full flag is given.
"""

import sys
from pathlib import Path

import pytest

# Allow running the suite from a source checkout without installing
sys.path.insert(0, str(Path(__file__).parent / "src"))


def pytest_addoption(parser):
    """Add custom command-line options."""
    parser.addoption(
        "--full",
        action="store_true",
        default=False,
        help="Run full test suite including integration tests (slow)",
    )


def pytest_configure(config):
    """Register the integration marker."""
    config.addinivalue_line(
        "markers", "integration: test runs a real compiler (enable with --full)"
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --full was given."""
    if config.getoption("--full"):
        return
    skip_integration = pytest.mark.skip(reason="needs --full to run")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)
