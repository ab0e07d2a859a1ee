"""Command-line interface for visadesk."""
