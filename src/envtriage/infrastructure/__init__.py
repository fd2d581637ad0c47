"""Logging and error plumbing shared across envtriage."""
