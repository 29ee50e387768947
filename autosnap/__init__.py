"""autosnap - Automatic local version history for a directory tree.

Watches files for edits, keeps the meaningful ones as compressed patch
chains, and restores any file to any recorded version.
"""

__version__ = "1.0.0"
