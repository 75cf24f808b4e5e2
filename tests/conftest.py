"""Pytest configuration and shared fixtures."""
import os
import sys
import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from kubeinventory.output import OutputManager, Verbosity, set_output


@pytest.fixture(autouse=True)
def fresh_output():
    """Give every test its own output manager at normal verbosity."""
    manager = OutputManager(verbosity=Verbosity.NORMAL)
    set_output(manager)
    yield manager
    set_output(OutputManager())
