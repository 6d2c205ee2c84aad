class MrcError(Exception):

    def __init__(self, message: str, filename: str | None = None):
        self.filename = filename
        self.message = message
        if filename is None:
            super().__init__(message)
        else:
            super().__init__(f"Error parsing {filename}: {message}")


class InvalidHeaderError(MrcError):
    """Header fails validation or is not a 1024-byte record."""


class InvalidModeError(MrcError):
    """Mode code not registered, or typed access does not match the block mode."""


class InvalidDimensionsError(MrcError, IndexError):
    """Declared and actual byte lengths or sample counts disagree."""


class TypeMismatchError(MrcError):
    """Bytes cannot be reinterpreted in place as the requested type."""
