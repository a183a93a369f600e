"""Unit test fixtures for isolated, fast test execution.

The root conftest provides project_root, mock_transport and requirements.
This file adds isolated state directories and frame record factories.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, List

import pytest

from framecert.modules.FrameTiming.frame_core.types import FrameRecord


@pytest.fixture(scope="function")
def isolated_state_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point FRAMECERT_STATE_DIR at a temporary directory.

    Modules that read the variable at import time must be reloaded by the test.
    """
    state_dir = tmp_path / "state"
    monkeypatch.setenv("FRAMECERT_STATE_DIR", str(state_dir))
    return state_dir


@pytest.fixture(scope="function")
def temp_output_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for CSV and run log outputs."""
    output_dir = tmp_path / "output"
    output_dir.mkdir()
    return output_dir


@pytest.fixture(scope="function")
def make_records() -> Callable[..., List[FrameRecord]]:
    """Factory for frame records at the given present times (ns).

    Ready times trail present times by ``ready_lag`` ns.
    """
    def factory(*present_times: int, ready_lag: int = 0) -> List[FrameRecord]:
        return [FrameRecord(present_time=t, ready_time=t - ready_lag) for t in present_times]

    return factory
