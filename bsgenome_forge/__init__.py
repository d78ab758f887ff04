"""Download genome sequences and forge them into a BSgenome data package."""

__version__ = "0.1.0"
