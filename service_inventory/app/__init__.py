"""
Inventory search service application package.

Structure:
- domain: entity summaries, scopes and result models
- caching: key building, blob stores and the cache engines
- catalog: authoritative catalog protocol and matching rules
- adapters: HTTP client for the catalog data service
- search: per-entity wiring used by the HTTP routes
"""
