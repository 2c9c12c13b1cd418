"""version-it - Next-version computation for CI pipelines.

This package computes the next version string of an artifact from its
current version, a versioning scheme, a bump intent and commit history.
"""

__version__ = "0.4.0"
__all__ = ["__version__"]
