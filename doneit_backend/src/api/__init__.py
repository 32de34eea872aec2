"""
Done-It backend package.

Import the FastAPI application from `src.api.main`; importing this package on
its own has no side effects.
"""
