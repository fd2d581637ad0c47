"""Command-line interface for envtriage."""
