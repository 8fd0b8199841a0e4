"""Domain models shared by the caching and search layers."""
