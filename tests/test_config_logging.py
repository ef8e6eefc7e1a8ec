import logging

import pytest

from AVLMap import NodePool, build_map
from AVLMap.config import (
    DEFAULT_GROWTH_FACTOR,
    DEFAULT_INITIAL_CAPACITY,
    get_growth_factor,
    get_initial_capacity,
)
from AVLMap.logger import PACKAGE_LOGGER, disable_logging, enable_logging, set_logging_level


def test_defaults(monkeypatch):
    monkeypatch.delenv("AVLMAP_INITIAL_CAPACITY", raising=False)
    monkeypatch.delenv("AVLMAP_GROWTH_FACTOR", raising=False)

    assert get_initial_capacity() == DEFAULT_INITIAL_CAPACITY
    assert get_growth_factor() == DEFAULT_GROWTH_FACTOR
    assert NodePool().capacity == DEFAULT_INITIAL_CAPACITY


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("AVLMAP_INITIAL_CAPACITY", "5")
    monkeypatch.setenv("AVLMAP_GROWTH_FACTOR", "1.5")

    pool = NodePool()
    assert pool.capacity == 5
    assert pool.growth_factor == 1.5


@pytest.mark.parametrize(
    "name, raw",
    [
        ("AVLMAP_INITIAL_CAPACITY", "lots"),
        ("AVLMAP_INITIAL_CAPACITY", "0"),
        ("AVLMAP_GROWTH_FACTOR", "fast"),
        ("AVLMAP_GROWTH_FACTOR", "1"),
    ],
)
def test_invalid_environment_values(monkeypatch, name, raw):
    monkeypatch.setenv(name, raw)

    with pytest.raises(ValueError):
        NodePool()


class _Collect(logging.Handler):
    def __init__(self):
        super().__init__(level=logging.DEBUG)
        self.messages = []

    def emit(self, record):
        self.messages.append(record.getMessage())


@pytest.fixture
def debug_messages():
    logger  = logging.getLogger(PACKAGE_LOGGER)
    handler = _Collect()
    level   = logger.level

    logger.addHandler(handler)
    set_logging_level("DEBUG")
    yield handler.messages

    logger.removeHandler(handler)
    set_logging_level(level)
    enable_logging()


def test_structural_events_are_logged(debug_messages):
    left  = build_map(range(10))
    right = build_map(range(20, 25))

    left.join(15, "pivot", right)
    left.split(15)

    assert any(message.startswith("Adopted 5 rows") for message in debug_messages)
    assert any(message.startswith("Joined around key 15") for message in debug_messages)
    assert any(message.startswith("Split at key 15") for message in debug_messages)


def test_pool_growth_is_logged(debug_messages):
    pool = NodePool(capacity=1)
    pool.allocate(1, "a")
    pool.allocate(2, "b")

    assert any(message.startswith("Node pool grown") for message in debug_messages)


def test_disable_logging(debug_messages):
    disable_logging()
    NodePool(capacity=1).allocate_many(4)

    assert debug_messages == []
