"""
Issue Comment Bot (Lambda + GitHub REST)

Where: AWS Lambda, or any Python caller.
What:  Keep exactly one bot comment per issue/PR, creating it once and updating it in place.
Why:   Repeated automation runs should refresh a single comment instead of spamming new ones.
"""

__all__ = [
    "config",
    "handler",
    "github",
    "issue",
    "metadata",
]
