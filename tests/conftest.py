import os
import sys

import pytest

# Add the project root to the Python path so the top-level modules import without installing
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from onion_address import generate_key


@pytest.fixture(scope="module")
def rsa_key():
    """One real hidden service key, shared by the tests of a module."""
    return generate_key()
