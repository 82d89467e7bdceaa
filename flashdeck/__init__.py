"""Command-line interface for Flashdeck."""
