import os
import sys

import pytest

# Get the directory of the current conftest.py file
current_dir = os.path.dirname(os.path.abspath(__file__))

# The project root is two levels up, tests run against the source tree.
project_root = os.path.abspath(os.path.join(current_dir, '../../'))

# Insert the project root at the beginning of sys.path
if project_root not in sys.path:
    sys.path.insert(0, project_root)


@pytest.fixture
def sink():
    """A sink that records events so tests can assert on them."""
    from oauthbridge.sinks import QueueSink
    return QueueSink()
