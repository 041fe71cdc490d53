"""Credential handling."""
