import pytest

from builders import DictResolver


@pytest.fixture
def resolver():
    return DictResolver()
