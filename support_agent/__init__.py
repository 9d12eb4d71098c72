"""
Support Agent

Polls a support mailbox, classifies each new message, and replies,
looks up the order, archives, or hands off to a human, recording every
message exactly once in the ledger.
"""

__version__ = "0.1.0"
