"""
High-level use cases of the marketplace data layer.

Each service module orchestrates the document repository and the registry to
implement domain rules (slugs, sort order, published filters, counters).
Routers and scripts call these services instead of touching the store.
"""
