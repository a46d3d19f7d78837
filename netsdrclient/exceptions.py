"""Errors raised by the NetSDR codec, sample extractor and channels."""


class NetSdrError(Exception):

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self):
        return f"{type(self).__name__}: {self.message}"


class FramingError(NetSdrError, ValueError):
    """Header length field disagrees with the bytes actually received."""


class UnknownItemCode(NetSdrError, ValueError):

    def __init__(self, code: int):
        super().__init__(f"unknown control item code 0x{code:04X}")
        self.code = code


class LengthExceeded(NetSdrError, ValueError):
    """Encoding would produce a frame longer than the header can describe."""


class UnsupportedSampleWidth(NetSdrError, ValueError):

    def __init__(self, bit_width: int, allowed=(8, 16, 24, 32)):
        widths = ", ".join(str(w) for w in allowed)
        super().__init__(f"sample width must be one of {widths} bits, got {bit_width}")
        self.bit_width = bit_width
        self.allowed = tuple(allowed)


class NotConnected(NetSdrError, ConnectionError):
    """A send was attempted on a closed control channel."""
