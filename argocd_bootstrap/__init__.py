"""
.. include:: ../README.md
"""

__all__ = [
    "addon",
    "cluster",
    "config",
    "credentials",
    "manifest",
    "plan",
    "apply",
    "aws",
    "exceptions",
    # Note this is exposed for CLI documentation, not to be used as a library
    "tool",
]
