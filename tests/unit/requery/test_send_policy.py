from __future__ import annotations

import pytest

from ccrequery.models import RequeryConfig
from ccrequery.requery.models import BroadcastState, DHTState, RequerySnapshot
from ccrequery.requery.policy import (
    activated_broadcast_policy,
    policy_from_config,
    requery_disabled,
)

pytestmark = [pytest.mark.unit, pytest.mark.requery]


def _snapshot(*, activated: bool, sent: bool) -> RequerySnapshot:
    return RequerySnapshot(
        download_key=b"\x00" * 20,
        activated=activated,
        broadcast_state=BroadcastState.SENT if sent else BroadcastState.NOT_SENT,
        dht_state=DHTState.IDLE,
        last_query_type=None,
        last_query_sent_at=None,
        dht_queries_issued=0,
        time_left=0.0,
        waiting=False,
    )


@pytest.mark.parametrize("activated", [True, False])
@pytest.mark.parametrize("sent", [True, False])
def test_disabled_policy_refuses_everything(activated, sent):
    assert requery_disabled(_snapshot(activated=activated, sent=sent)) is False


@pytest.mark.parametrize(
    ("activated", "sent", "expected"),
    [
        (False, False, False),
        (True, False, True),
        (True, True, False),
        (False, True, False),
    ],
)
def test_activated_broadcast_policy(activated, sent, expected):
    assert activated_broadcast_policy(_snapshot(activated=activated, sent=sent)) is expected


def test_policy_from_config():
    assert policy_from_config(RequeryConfig()) is requery_disabled
    assert policy_from_config(RequeryConfig(enabled=True)) is activated_broadcast_policy
