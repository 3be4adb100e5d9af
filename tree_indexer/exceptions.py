"""
Custom exception hierarchy for the tree indexer.

Every error raised by the fingerprinting pipeline derives from
TreeIndexerError so the entry point can treat the whole family as fatal.
"""


class TreeIndexerError(Exception):
    """Base exception for all tree indexer errors."""
    pass


class TraversalError(TreeIndexerError):
    """Raised when a directory entry cannot be stat'ed or listed."""
    pass


class DigestError(TreeIndexerError):
    """Raised when a regular file cannot be opened or read to the end."""
    pass


class ClassificationError(TreeIndexerError):
    """Raised when the magic-byte signature engine cannot be consulted."""
    pass


class StatMismatchError(TreeIndexerError):
    """Raised when a stat structure lacks the portable attributes."""
    pass


class IndexStorageError(TreeIndexerError):
    """Raised when a record cannot be written to the index."""
    pass
