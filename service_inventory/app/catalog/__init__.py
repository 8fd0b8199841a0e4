"""Authoritative catalog interfaces."""
