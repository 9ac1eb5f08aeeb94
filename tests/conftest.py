from __future__ import annotations

import sys
from collections import Counter
from pathlib import Path
from typing import List

import pytest

BASE_DIR = Path(__file__).resolve().parent.parent
SRC_DIR = (BASE_DIR / "src").resolve()

if str(BASE_DIR) not in sys.path:
    sys.path.append(str(BASE_DIR))
if str(SRC_DIR) not in sys.path:
    sys.path.append(str(SRC_DIR))


@pytest.fixture(params=["basic", "cached"])
def mode(request: pytest.FixtureRequest) -> str:
    """Run a test against both interpreter flavours; they share one contract."""
    return request.param


def pytest_collection_modifyitems(config: pytest.Config, items: List[pytest.Item]) -> None:
    """Refuse to run when two parametrised cases share an id."""
    del config

    counts = Counter(item.nodeid for item in items)
    repeated = sorted(nodeid for nodeid, n in counts.items() if n > 1)
    if repeated:
        listing = "\n".join(f"  {nodeid} (x{counts[nodeid]})" for nodeid in repeated)
        raise pytest.UsageError(f"Repeated test ids:\n{listing}")
