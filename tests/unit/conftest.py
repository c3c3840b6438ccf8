"""
Unit Test Fixtures.

Unit tests run against the in-memory backend or mocked stores and never
touch a database.
"""

from collections.abc import Callable
from unittest.mock import MagicMock

import pytest


@pytest.fixture
def sequential_ids() -> Callable[[], str]:
    """Id factory producing evt-1, evt-2, ..."""
    counter = iter(range(1, 10_000))
    return lambda: f"evt-{next(counter)}"


@pytest.fixture
def mock_logger() -> MagicMock:
    """
    Mock logger for testing logging calls.

    Usage:
        def test_logging(mock_logger):
            with patch("module.get_logger", return_value=mock_logger):
                ...
                mock_logger.info.assert_called_once()
    """
    logger = MagicMock()
    logger.debug = MagicMock()
    logger.info = MagicMock()
    logger.warning = MagicMock()
    logger.error = MagicMock()
    logger.exception = MagicMock()
    return logger
