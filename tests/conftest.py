"""Shared test fixtures for the event tracker tests."""

from __future__ import annotations

import os

import pytest

from event_tracker.tracker import Tracker
from tests.fakes import FakeScheduler, RecordingTransport, fake_hash


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep EVENT_TRACKER_* variables of the host out of the tests."""
    for name in list(os.environ):
        if name.startswith("EVENT_TRACKER_"):
            monkeypatch.delenv(name)


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def production_options() -> dict:
    """Complete credentials with debug mode off."""
    return {
        "client_key": "key",
        "client_secret": "secret",
        "endpoint": "https://collector.example/v1",
        "client_name": "clientName",
        "debug_mode": False,
    }


@pytest.fixture
def make_tracker(scheduler, transport, production_options):
    """Factory for trackers wired to the fake scheduler and transport."""
    def factory(**overrides) -> Tracker:
        options = {**production_options, **overrides}
        options.setdefault("transport", transport)
        options.setdefault("calculate_hash", fake_hash)
        options.setdefault("scheduler", scheduler)
        return Tracker(**options)

    return factory
