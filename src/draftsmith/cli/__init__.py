"""Draftsmith command-line interface."""
