"""Domain models and rules (slugs, documents) independent of storage."""
