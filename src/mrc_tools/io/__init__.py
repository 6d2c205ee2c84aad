from .exceptions import MrcError, InvalidHeaderError, InvalidModeError, \
    InvalidDimensionsError, TypeMismatchError
