"""Command-line interface for object-atlas."""
