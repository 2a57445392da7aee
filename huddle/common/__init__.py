"""Utilities shared across Huddle packages."""
