"""
Core utilities shared across branchstore.

This package hosts configuration (env vars), logging setup, rate limiting,
the read cache used by the remote store and small time helpers. Repositories
and services depend on these primitives instead of reading the environment
themselves.
"""
