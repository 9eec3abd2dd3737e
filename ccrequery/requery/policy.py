"""Send policies deciding whether a supervisor may requery right now.

The shipped default keeps requerying switched off. The activation rule stays
available so it can be enabled through ``requery.enabled`` or injected
directly.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable

if TYPE_CHECKING:  # pragma: no cover
    from ccrequery.models import RequeryConfig
    from ccrequery.requery.models import RequerySnapshot

SendPolicy = Callable[["RequerySnapshot"], bool]


def requery_disabled(_snapshot: RequerySnapshot) -> bool:
    """Never allow a requery."""
    return False


def activated_broadcast_policy(snapshot: RequerySnapshot) -> bool:
    """Allow a requery once activated, until the broadcast slot is used."""
    return snapshot.activated and not snapshot.sent_broadcast_query


def policy_from_config(config: RequeryConfig) -> SendPolicy:
    """Pick the send policy selected by configuration."""
    if config.enabled:
        return activated_broadcast_policy
    return requery_disabled
