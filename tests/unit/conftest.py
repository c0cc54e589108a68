"""
Fixtures for unit tests.
"""

import os
import sys
from types import SimpleNamespace

import pytest

sys.path.append(os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from fieldcrypt.gateway import Gateway
from fieldcrypt.models.registry import Registry
from fieldcrypt.utils.cryptography import EnvelopeCodec


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep configuration variables from the developer's shell out of the tests."""
    for name in list(os.environ):
        if name.startswith('FIELDCRYPT_'):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.delenv('ENVIRONMENT', raising=False)
    monkeypatch.delenv('TRACE', raising=False)


@pytest.fixture
def registry():
    """A registry isolated from the shared one."""
    return Registry()


@pytest.fixture
def codec():
    return EnvelopeCodec()


@pytest.fixture
def gateway(registry, codec):
    return Gateway(registry=registry, codec=codec)


@pytest.fixture
def trace_config():
    """Minimal config object with tracing switched on."""
    return SimpleNamespace(TRACE=True, ENCRYPTION_KEY='', KDF_PROFILE='v1')
