"""Search result caching engines and their building blocks."""
