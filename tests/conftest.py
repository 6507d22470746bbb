"""Global pytest configuration for the Continuum memory system.

The module ensures the ``src`` tree (and the repository root, for the shared
``tests.factories`` helpers) is importable regardless of how the repository is
cloned, and provides fixtures shared across the suite.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path

import pytest

# Add the src directory to the Python path so imports can work correctly
project_root = Path(__file__).parent.parent
src_dir = project_root / 'src'

for path in (src_dir, project_root):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from continuum.memory.config.settings import ContinuumConfig, default_config  # noqa: E402
from tests.factories.memories import NOW  # noqa: E402


@pytest.fixture
def now() -> datetime:
    """The fixed evaluation time used throughout the suite."""
    return NOW


@pytest.fixture
def config() -> ContinuumConfig:
    return default_config()


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer environment variables from leaking into tests."""
    monkeypatch.delenv("CONTINUUM_CONFIG_PATH", raising=False)
    monkeypatch.delenv("CONTINUUM_LOG_LEVEL", raising=False)


class ListHandler(logging.Handler):
    """Collect formatted log records for assertions."""

    def __init__(self) -> None:
        super().__init__()
        self.messages: list[str] = []
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:  # pragma: no cover - trivial
        self.records.append(record)
        self.messages.append(record.getMessage())


@pytest.fixture
def capture_logger():
    """Attach a ``ListHandler`` to a named logger for the duration of a test."""
    attached = []

    def _attach(name: str, level: int = logging.DEBUG) -> ListHandler:
        handler = ListHandler()
        target = logging.getLogger(name)
        previous_level = target.level
        target.addHandler(handler)
        target.setLevel(level)
        attached.append((target, handler, previous_level))
        return handler

    yield _attach

    for target, handler, previous_level in attached:
        target.removeHandler(handler)
        target.setLevel(previous_level)
