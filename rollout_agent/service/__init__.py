"""Prompt assembly, response parsing and decision policy."""
