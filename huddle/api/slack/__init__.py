"""Slack Events API endpoint for the interactive assistant."""
