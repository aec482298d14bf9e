"""
Persistence adapters.

These modules encapsulate how documents are stored and retrieved: today a
GitHub repository with one branch per user, or an in-process store for
development. Services depend on the DocumentStore interface rather than on a
particular backend.
"""
