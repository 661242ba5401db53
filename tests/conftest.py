# tests/conftest.py

import os

import pytest

from kube_topology.core.config import TopologyConfig

SUFFIX = "abcd1234"


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """
    Runs every test from an empty directory with no KUBE_TOPOLOGY_* variables,
    so neither a developer's config file nor their environment leaks into the
    configuration under test.
    """
    for key in list(os.environ):
        if key.upper().startswith("KUBE_TOPOLOGY_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def config():
    return TopologyConfig()


@pytest.fixture
def fixed_suffix():
    """Deterministic replacement for the random auto-naming suffix."""
    return lambda: SUFFIX
