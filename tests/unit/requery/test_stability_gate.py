from __future__ import annotations

import pytest

from ccrequery.models import RequeryConfig
from ccrequery.requery.stability import (
    MIN_MESSAGES_PER_CONNECTION,
    MIN_STABLE_CONNECTIONS,
    MIN_TOTAL_MESSAGES,
    ConnectionStabilityGate,
)

pytestmark = [pytest.mark.unit, pytest.mark.requery]


def test_default_thresholds():
    assert MIN_STABLE_CONNECTIONS == 2
    assert MIN_MESSAGES_PER_CONNECTION == 6
    assert MIN_TOTAL_MESSAGES == 45


@pytest.mark.parametrize(
    ("counts", "expected"),
    [
        ([], False),
        ([100], False),
        ([6, 5, 40, 1], True),
        ([6, 5, 5], False),
        ([6, 6, 32], False),
        ([6, 6, 33], True),
        ([20, 30], True),
    ],
)
def test_is_stable(probe, counts, expected):
    probe.counts = counts
    gate = ConnectionStabilityGate(probe)

    assert gate.is_stable() is expected


def test_total_not_read_when_too_few_settled_connections(probe):
    probe.counts = [1, 1]
    gate = ConnectionStabilityGate(probe)

    gate.is_stable()

    assert probe.calls == 1


def test_test_override_skips_probe(probe):
    gate = ConnectionStabilityGate(probe, assume_stable_for_testing=True)

    assert gate.is_stable() is True
    assert probe.calls == 0


def test_from_config(probe):
    config = RequeryConfig(
        min_stable_connections=1,
        min_messages_per_connection=3,
        min_total_messages=10,
    )
    gate = ConnectionStabilityGate.from_config(probe, config)

    assert gate.min_stable_connections == 1
    assert gate.min_messages_per_connection == 3
    assert gate.min_total_messages == 10
    assert gate.assume_stable_for_testing is False

    probe.counts = [3, 7]
    assert gate.is_stable() is True
    probe.counts = [2, 7]
    assert gate.is_stable() is False
