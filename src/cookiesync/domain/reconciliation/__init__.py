"""Reconciliation core: keep the live rule engine in line with canonical state.

Layers:
1) :mod:`.settle` joins concurrent calls without short-circuiting
2) :mod:`.schema` converts the persisted rule-set payload
3) :mod:`.mirror` holds the local copy of the canonical rule set
4) :mod:`.engine` applies add/remove/set-all/clear-all intents
5) :mod:`.status` observes the outcome of every external call
"""

from __future__ import annotations

from .engine import Operation, OperationResult, ReconciliationEngine, ReconciliationPhase
from .mirror import CanonicalStoreMirror, RuleSetObserver
from .schema import RulePayload, decode_rule_set, encode_rule_set
from .settle import Settled, settle_all
from .status import UNKNOWN_ERROR_MESSAGE, StatusReporter

__all__ = [
    "UNKNOWN_ERROR_MESSAGE",
    "CanonicalStoreMirror",
    "Operation",
    "OperationResult",
    "ReconciliationEngine",
    "ReconciliationPhase",
    "RulePayload",
    "RuleSetObserver",
    "Settled",
    "StatusReporter",
    "decode_rule_set",
    "encode_rule_set",
    "settle_all",
]
