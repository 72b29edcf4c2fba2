import os
import sys
from pathlib import Path

import pytest

os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")

ROOT = Path(__file__).resolve().parents[2]
src_root = ROOT / "src"
if str(src_root) not in sys.path:
    sys.path.insert(0, str(src_root))


@pytest.fixture
def small_config():
    from flocksim.config import SimulationConfig

    return SimulationConfig(agent_count=40, world_width=300.0, world_height=300.0, seed=11)
