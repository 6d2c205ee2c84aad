from .endian import FileEndian
from .mode import Mode
from .header import Header
from .ext_header import ExtHeader, ExtHeaderMut
from .data_block import DataBlock, DataBlockMut, ComplexInt16, Packed4Bit
from .view import MrcView, MrcViewMut
