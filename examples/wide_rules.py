"""
A rule table over 24 flags.
Wide enough that PyReach analyzes it statically instead of running all
2**24 combinations. ``pyreach examples/wide_rules.py`` prints
    ['approve', 'escalate', 'reject'].
"""

from typing import Final

FRAUD_FLAG: Final = 3
LIMIT_FLAG: Final = FRAUD_FLAG * 7 + 2


def evaluate(flags):
    decision = "approve"
    if flags[0] and flags[1]:
        decision = "escalate"
    elif flags[FRAUD_FLAG]:
        decision = "reject"
    if flags[LIMIT_FLAG] and not flags[LIMIT_FLAG]:
        decision = "unreachable"
    if decision == "escalate" and flags[12]:
        return "reject"
    return decision
