"""Shared test fixtures for the pipeline bot."""
from pathlib import Path
from typing import Any, Callable, Dict, List

import pytest

from core.customizations import CustomizationStore
from core.models import make_event
from core.pipeline import Pipeline
from core.registry import MiddlewareRegistry


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """Provide a temporary data directory."""
    return tmp_path / "data"


@pytest.fixture
def store(data_dir: Path) -> CustomizationStore:
    """Provide a CustomizationStore backed by a temp JSON file."""
    return CustomizationStore(str(data_dir / "middlewares.json"))


@pytest.fixture
def registry(store: CustomizationStore) -> MiddlewareRegistry:
    return MiddlewareRegistry(store)


@pytest.fixture
def pipeline(data_dir: Path) -> Pipeline:
    """Provide a Pipeline with no license middleware."""
    return Pipeline(data_dir=str(data_dir))


@pytest.fixture
def event() -> Dict[str, Any]:
    return make_event("text", "web", "hi", raw={})


@pytest.fixture
def calls() -> List[str]:
    return []


@pytest.fixture
def recorder(calls: List[str]) -> Callable[[str], Callable[[Dict[str, Any]], None]]:
    """Build main-chain handlers that append their label to ``calls``."""
    def make(label: str) -> Callable[[Dict[str, Any]], None]:
        def handler(event: Dict[str, Any]) -> None:
            calls.append(label)
        return handler
    return make
