"""Marketplace API access, caching and the pure view-model rules."""
