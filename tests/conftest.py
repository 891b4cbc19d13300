from __future__ import annotations

import pytest

from tests._fixtures.context_builder import ContextBuilder


@pytest.fixture
def context_builder() -> ContextBuilder:
    """Provide a fresh in-memory snapshot builder."""
    return ContextBuilder()
