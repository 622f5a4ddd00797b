"""CLI module for threadline."""
