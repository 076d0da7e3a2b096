import logging

import pytest

from foldseal.core import encrypt as encrypt_module


@pytest.fixture(autouse=True)
def fast_kdf(monkeypatch):
    # Real Argon2id, cheapest parameters, so the suite stays quick.
    monkeypatch.setattr(encrypt_module, "DEFAULT_KDF_TIME_COST", 1)
    monkeypatch.setattr(encrypt_module, "DEFAULT_KDF_MEMORY_COST_KIB", 8)


@pytest.fixture(autouse=True)
def clean_root_logger():
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()


@pytest.fixture
def password():
    return "correct horse battery staple"
