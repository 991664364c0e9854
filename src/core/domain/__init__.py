"""Domain models and entities.

Why:
- Pure, strict data structures (Pydantic v2) and the error hierarchy live here.
- The domain knows nothing about HTTP, the terminal or SDKs: only the concepts
  of catalogs, templates and materialization.
"""
