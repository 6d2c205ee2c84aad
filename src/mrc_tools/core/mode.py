import operator
from enum import IntEnum

import numpy as np

from ..configs import MODE_SCALAR_CODES, MODE_BYTE_WIDTHS


class Mode(IntEnum):
    """
    Voxel encodings of the MRC2014 format.

    INT16_COMPLEX and FLOAT32_COMPLEX are stored as (real, imag) pairs,
    real first. MRC2014 leaves this open; it is the layout every common
    reader expects.

    PACKED4BIT stores two 4-bit values per byte, low nibble first.
    """
    INT8 = 0
    INT16 = 1
    FLOAT32 = 2
    INT16_COMPLEX = 3
    FLOAT32_COMPLEX = 4
    UINT16 = 6
    FLOAT16 = 12
    PACKED4BIT = 101

    @classmethod
    def from_code(cls, code: int) -> "Mode | None":
        try:
            return cls(operator.index(code))
        except (TypeError, ValueError):
            return None

    @property
    def byte_width(self) -> int:
        return MODE_BYTE_WIDTHS[self.value]

    @property
    def is_complex(self) -> bool:
        return self in (Mode.INT16_COMPLEX, Mode.FLOAT32_COMPLEX)

    @property
    def is_integer(self) -> bool:
        return self in (Mode.INT8, Mode.INT16, Mode.INT16_COMPLEX, Mode.UINT16, Mode.PACKED4BIT)

    @property
    def is_float(self) -> bool:
        return self in (Mode.FLOAT32, Mode.FLOAT32_COMPLEX, Mode.FLOAT16)

    @property
    def scalar_code(self) -> str:
        return MODE_SCALAR_CODES[self.value]

    @property
    def native_dtype(self) -> np.dtype:
        return np.dtype(self.scalar_code)

    @property
    def scalars_per_voxel(self) -> int:
        return 2 if self is Mode.INT16_COMPLEX else 1

    def data_size(self, voxel_count: int) -> int:
        """Bytes needed on disk for `voxel_count` samples."""
        if self is Mode.PACKED4BIT:
            return (voxel_count + 1) // 2
        return voxel_count * self.byte_width
