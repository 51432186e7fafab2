"""Pytest configuration for all tests."""

from hypothesis import settings

# Each example runs its own event loop via asyncio.run, so per-example
# timing is too noisy for Hypothesis deadlines
settings.register_profile("workitems", deadline=None)
settings.load_profile("workitems")
