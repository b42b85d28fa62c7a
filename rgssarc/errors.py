class RgssError(Exception):
    """Base class for archive format errors."""


# Header related
class InvalidHeaderError(RgssError):
    pass


class InvalidVersionError(RgssError):
    pass


class MagicReadFailedError(RgssError):
    pass


# Lookup
class EntryNotFoundError(RgssError, KeyError):
    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message
        return str(self.args[0]) if self.args else ""


# Bounds/consistency
class TruncatedArchiveError(RgssError, EOFError):
    pass


class FieldOverflowError(RgssError, OverflowError):
    pass
