"""Configuration loading and defaults."""
