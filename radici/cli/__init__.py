"""Command-line interface for Radici."""
