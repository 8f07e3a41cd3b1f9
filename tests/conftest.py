"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from tests.fixtures import FakeConnection


@pytest.fixture(autouse=True)
def no_sleep(monkeypatch):
    """Record sleeps instead of performing them."""
    calls: list[float] = []
    monkeypatch.setattr("time.sleep", lambda seconds: calls.append(seconds))
    return calls


@pytest.fixture
def fake_connect(monkeypatch):
    """
    Patch netmiko's ConnectHandler as used by the bridge.

    Call the fixture with canned responses and a prompt; it returns the
    FakeConnection that the next connect() will receive.
    """
    captured: dict = {}

    def _install(responses=None, prompt="apc>"):
        conn = FakeConnection(responses, prompt)

        def _handler(**params):
            captured.update(params)
            return conn

        monkeypatch.setattr("pdu_upgrade.bridge.ConnectHandler", _handler)
        return conn

    _install.params = captured
    return _install
