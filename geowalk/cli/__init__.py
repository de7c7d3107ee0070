"""Command-line interface for geowalk."""
