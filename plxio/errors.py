"""
Exceptions raised while decoding plx files.

All of them derive from :class:`PlxReadError` so a caller can catch
every decoding failure at once.
"""

__all__ = [
    "PlxReadError",
    "TruncatedError",
    "CorruptHeaderError",
    "TruncatedBlockError",
    "PlxIOError",
    "UnknownChannelError",
    "MissingCalibrationError",
]


class PlxReadError(Exception):
    pass


class TruncatedError(PlxReadError):
    """
    The file ends inside the global header or the channel header tables.
    Nothing of the file can be used.
    """

    def __init__(self, what, offset, wanted, available):
        self.offset = offset
        self.wanted = wanted
        self.available = available
        PlxReadError.__init__(
            self, f"Truncated {what} at offset {offset}: need {wanted} bytes, only {available} available"
        )


class CorruptHeaderError(PlxReadError):
    pass


class TruncatedBlockError(PlxReadError):
    """
    The data section ends in the middle of a data block.
    Blocks read before `offset` are complete and valid.
    """

    def __init__(self, offset, wanted, available):
        self.offset = offset
        self.wanted = wanted
        self.available = available
        PlxReadError.__init__(
            self, f"Truncated data block at offset {offset}: need {wanted} bytes, only {available} available"
        )


class PlxIOError(PlxReadError):
    def __init__(self, offset, reason):
        self.offset = offset
        PlxReadError.__init__(self, f"Read failure at offset {offset}: {reason}")


class UnknownChannelError(PlxReadError, KeyError):
    def __str__(self):
        return str(self.args[0]) if self.args else ""


class MissingCalibrationError(PlxReadError, ValueError):
    pass
