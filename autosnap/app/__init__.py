"""Command-line entry points for autosnap."""
