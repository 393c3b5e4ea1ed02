import pytest

from genericdao.descriptor import DescriptorRegistry
from tests.fakes import FakeConnection, FakeProvider


@pytest.fixture
def registry():
    """A fresh descriptor registry per test"""
    return DescriptorRegistry()


@pytest.fixture
def connection():
    return FakeConnection()


@pytest.fixture
def provider(connection):
    return FakeProvider(connection)
