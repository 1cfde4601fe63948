import sys
import os

import pytest
import structlog

# Add project root to sys.path so tests can import top-level packages like 'services' and 'shared'
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)


@pytest.fixture(autouse=True)
def reset_structlog():
    # the CLI points structlog at the runner's stderr; undo that between tests
    yield
    structlog.reset_defaults()
