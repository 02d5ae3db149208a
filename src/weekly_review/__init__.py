"""
Weekly Review.

Open the notes in a vault that were created or modified in the last few
days, and remember when the last review happened.
"""

__all__ = [
    "cli",
    "config",
    "log",
    "review",
    "vault",
    "workspace",
]
