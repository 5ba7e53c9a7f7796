import pytest

from fakes import FakeIdentityProvider, FakeStore


@pytest.fixture
def provider() -> FakeIdentityProvider:
    return FakeIdentityProvider()


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()
