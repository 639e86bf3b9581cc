"""Discord runtime for the academy referral gateway."""

__all__ = ["verification"]
