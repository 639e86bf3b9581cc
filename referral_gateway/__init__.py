"""Affiliate directory lookup used by the academy verification bot.

The Discord layer in ``academy_bot`` only talks to :mod:`.verification`; the
fetch, normalization and pagination details live in the sibling modules.
"""
