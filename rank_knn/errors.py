"""Exceptions raised by the analysis pipeline."""


class RankKnnError(Exception):
    """Base class for every error this package raises on purpose."""


class MalformedInputError(RankKnnError):
    """The match table cannot be used: missing file/columns or non-numeric values."""


class InsufficientDataError(RankKnnError):
    """Too little usable data left to split, fold or fit."""
