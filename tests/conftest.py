"""Shared fixtures: in-memory feed transports."""

import asyncio
import json

import pytest


class FakeTransport:
    """Transport that replays a fixed list of frames."""

    def __init__(self, frames=(), error=None, hold_open=False):
        self.frames = list(frames)
        self.error = error
        self.hold_open = hold_open
        self.sent: list[str] = []
        self.closed = False
        self._closed_event = asyncio.Event()

    @property
    def sent_payloads(self) -> list[dict]:
        return [json.loads(message) for message in self.sent]

    async def send(self, message: str) -> None:
        if self.closed:
            raise OSError("transport closed")
        self.sent.append(message)

    async def close(self) -> None:
        self.closed = True
        self._closed_event.set()

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for frame in self.frames:
            if self.closed:
                return
            yield frame
            await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        if self.hold_open:
            await self._closed_event.wait()


class FakeConnector:
    """Connector returning queued transports or raising queued errors."""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls: list[tuple[str, dict]] = []

    async def __call__(self, endpoint, **kwargs):
        self.calls.append((endpoint, kwargs))
        if not self.outcomes:
            raise OSError("no transport available")
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class RecordingSleep:
    """Sleep replacement that records delays without waiting."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def discover_frame(*attributes: dict) -> str:
    """Build a discover notification frame carrying the given records."""
    return json.dumps(
        {
            "identifier": json.dumps({"channel": "DiscoverLpChannel"}),
            "message": {
                "discover": {
                    "data": [
                        {"id": str(i), "type": "pool", "attributes": attrs}
                        for i, attrs in enumerate(attributes)
                    ]
                }
            },
        }
    )


def trending_attributes(**overrides) -> dict:
    """Raw attributes for a token that passes the default thresholds."""
    attributes = {
        "name": "Moon Cat",
        "symbol": "MCAT",
        "tokenAddress": "MCATmint1111111111111111111111111111111111",
        "fdv": 100000.0,
        "price_usd": 0.0001,
        "pooled_sol": 50.0,
        "volume": 10001.0,
        "holders_count": 250,
        "dev_holding_perc": 2.5,
        "buys_count": 30,
        "sells_count": 20,
        "created_timestamp": 1_700_000_000,
        "audit": {
            "top_holders_perc": 10.0,
            "lp_burned_perc": 100,
            "freeze_authority": False,
            "mint_authority": False,
        },
        "socials": {"twitter": "@mooncat", "telegram": None, "website": None},
    }
    attributes.update(overrides)
    return attributes


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def make_transport():
    return FakeTransport


@pytest.fixture
def make_connector():
    return FakeConnector
