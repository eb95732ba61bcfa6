"""
Root conftest.py for all tests.

Every test runs against a fresh in-memory store and a fast password hasher.
"""
import pytest

from coffeehouse.store import reset_store


@pytest.fixture(autouse=True)
def memory_store(settings):
    settings.STORE_BACKEND = 'memory'
    settings.PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']
    reset_store()
    yield
    reset_store()
