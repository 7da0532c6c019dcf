"""lfsstore: a Git LFS content store served over HTTP."""

__version__ = "1.0.0"
