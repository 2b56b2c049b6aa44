import sys
from pathlib import Path

import pytest


# Ensure tests can import project packages regardless of how pytest is invoked.
ROOT = Path(__file__).resolve().parents[1]
ROOT_STR = str(ROOT)
if ROOT_STR not in sys.path:
    sys.path.insert(0, ROOT_STR)


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    # The limiter is process-global; each test starts with empty windows.
    from api.rate_limit import limiter

    limiter.clear()
    yield
    limiter.clear()
