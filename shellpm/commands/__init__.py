"""Command line handlers for shellpm."""
