"""
Byte-order safe reading and writing of MRC2014 volume files.
"""
from .core import FileEndian, Mode, Header, ExtHeader, ExtHeaderMut, \
    DataBlock, DataBlockMut, ComplexInt16, Packed4Bit, MrcView, MrcViewMut
from .io.exceptions import MrcError, InvalidHeaderError, InvalidModeError, \
    InvalidDimensionsError, TypeMismatchError
from .io.mrc_file import MrcFile, MrcMmap, open_file, open_mmap, save_file, read_mrc
from .io.synthetic import generate_ball_files

__version__ = "0.1.0"

__all__ = [
    "FileEndian",
    "Mode",
    "Header",
    "ExtHeader",
    "ExtHeaderMut",
    "DataBlock",
    "DataBlockMut",
    "ComplexInt16",
    "Packed4Bit",
    "MrcView",
    "MrcViewMut",
    "MrcError",
    "InvalidHeaderError",
    "InvalidModeError",
    "InvalidDimensionsError",
    "TypeMismatchError",
    "MrcFile",
    "MrcMmap",
    "open_file",
    "open_mmap",
    "save_file",
    "read_mrc",
    "generate_ball_files",
    "__version__",
]
