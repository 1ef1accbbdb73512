"""Exceptions raised by proctree."""


class ProcTreeError(Exception):
    """Base class for proctree errors."""


class CollectionError(ProcTreeError):
    """The OS process-table query itself failed."""
