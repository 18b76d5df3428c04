"""Sentinel Console: rate-governance rules and portfolio risk service."""
