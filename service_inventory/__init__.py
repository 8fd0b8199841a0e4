"""
Inventory search service for the retail backend.

Fronts the authoritative catalog with per-tenant search caches:
- prefix-derived reuse of earlier search results
- bounded per-scope cache maps with sliding expiry
- direct and parameterized query caches for exact lookups and reports
"""
