"""
Typed access to the voxel data block.

A data block borrows a byte buffer (bytes, bytearray, mmap, numpy array or
memmap) through a memoryview and never copies it. Values handed to the
caller are always native-endian; the bytes stay in file byte order.
"""
from typing import Iterator, NamedTuple

import numpy as np

from .endian import FileEndian
from .mode import Mode
from ..io.exceptions import InvalidModeError, InvalidDimensionsError, TypeMismatchError
from ..configs import ITER_CHUNK_SIZE


class ComplexInt16(NamedTuple):
    real: int
    imag: int


class Packed4Bit:
    """One byte of PACKED4BIT data: first value in the low nibble, second in the high nibble."""

    __slots__ = ("byte",)

    def __init__(self, byte: int = 0):
        self.byte = byte & 0xFF

    @classmethod
    def from_values(cls, first: int, second: int) -> "Packed4Bit":
        for v in (first, second):
            if not 0 <= v <= 0x0F:
                raise ValueError(f"4-bit value out of range: {v}")
        return cls(first | (second << 4))

    def first(self) -> int:
        return self.byte & 0x0F

    def second(self) -> int:
        return self.byte >> 4

    def __eq__(self, other) -> bool:
        return isinstance(other, Packed4Bit) and other.byte == self.byte

    def __hash__(self) -> int:
        return hash(self.byte)

    def __repr__(self) -> str:
        return f"Packed4Bit(first={self.first()}, second={self.second()})"


def _unpack_nibbles(raw: np.ndarray) -> np.ndarray:
    nibbles = np.empty(2 * raw.size, dtype=np.uint8)
    nibbles[0::2] = raw & 0x0F
    nibbles[1::2] = raw >> 4
    return nibbles


class DataBlock:
    """
    Read-only voxel data in file byte order.

    `voxel_count` is needed for PACKED4BIT, where an odd count leaves the
    high nibble of the last byte unused. When omitted it is derived from
    the buffer length.
    """

    def __init__(self, buffer, mode: Mode, file_endian: FileEndian, voxel_count: int | None = None):
        self._buffer = memoryview(buffer).cast("B")

        mode_ = Mode.from_code(mode)
        if mode_ is None:
            raise InvalidModeError(f"Unsupported mode {mode!r}")
        self.mode = mode_
        self.file_endian = FileEndian(file_endian)

        nbytes = len(self._buffer)
        if voxel_count is None:
            if self.mode is Mode.PACKED4BIT:
                voxel_count = 2 * nbytes
            else:
                voxel_count = nbytes // self.mode.byte_width

        expected = self.mode.data_size(voxel_count)
        if voxel_count < 0 or expected != nbytes:
            raise InvalidDimensionsError(
                f"{voxel_count} voxels of mode {self.mode.name} need {expected} bytes, got {nbytes}"
            )
        self.voxel_count = voxel_count

        self._file_dtype = self.file_endian.dtype(self.mode.scalar_code)

    def __len__(self) -> int:
        return self.voxel_count

    def __repr__(self) -> str:
        return (f"{self.__class__.__name__}(mode={self.mode.name}, "
                f"endian={self.file_endian.name}, voxels={self.voxel_count})")

    @property
    def nbytes(self) -> int:
        return len(self._buffer)

    # -- checks --------------------------------------------------------------

    def _require(self, mode: Mode) -> None:
        if self.mode is not mode:
            raise InvalidModeError(f"Block holds {self.mode.name} data, requested {mode.name}")

    def _check_index(self, index: int) -> None:
        if not 0 <= index < self.voxel_count:
            raise InvalidDimensionsError(
                f"Voxel index {index} out of range for {self.voxel_count} voxels"
            )

    # -- decoding ------------------------------------------------------------

    def _decode(self, start: int, count: int) -> np.ndarray:
        """Native-endian copy of `count` voxels from voxel `start`."""
        if self.mode is Mode.PACKED4BIT:
            first_byte = start // 2
            last_byte = (start + count + 1) // 2
            raw = np.frombuffer(self._buffer, dtype=np.uint8,
                                count=last_byte - first_byte, offset=first_byte)
            skip = start % 2
            return _unpack_nibbles(raw)[skip:skip + count]

        per_voxel = self.mode.scalars_per_voxel
        values = np.frombuffer(self._buffer, dtype=self._file_dtype,
                               count=count * per_voxel, offset=start * self.mode.byte_width)
        values = values.astype(self.mode.native_dtype)
        if per_voxel == 2:
            values = values.reshape(count, 2)
        return values

    def _to_python(self, value):
        if self.mode is Mode.INT16_COMPLEX:
            return ComplexInt16(int(value[0]), int(value[1]))
        return value.item()

    def get(self, index: int):
        """Voxel `index` as a Python value (int, float, complex or ComplexInt16)."""
        self._check_index(index)
        return self._to_python(self._decode(index, 1)[0])

    def get_i8(self, index: int) -> int:
        self._require(Mode.INT8)
        return self.get(index)

    def get_i16(self, index: int) -> int:
        self._require(Mode.INT16)
        return self.get(index)

    def get_u16(self, index: int) -> int:
        self._require(Mode.UINT16)
        return self.get(index)

    def get_f16(self, index: int) -> float:
        self._require(Mode.FLOAT16)
        return self.get(index)

    def get_f32(self, index: int) -> float:
        self._require(Mode.FLOAT32)
        return self.get(index)

    def get_complex_i16(self, index: int) -> ComplexInt16:
        self._require(Mode.INT16_COMPLEX)
        return self.get(index)

    def get_complex_f32(self, index: int) -> complex:
        self._require(Mode.FLOAT32_COMPLEX)
        return self.get(index)

    def get_packed4(self, index: int) -> int:
        self._require(Mode.PACKED4BIT)
        return self.get(index)

    def get_packed4_pair(self, byte_index: int) -> Packed4Bit:
        """The raw byte holding voxels 2*byte_index and 2*byte_index + 1."""
        self._require(Mode.PACKED4BIT)
        if not 0 <= byte_index < self.nbytes:
            raise InvalidDimensionsError(
                f"Byte index {byte_index} out of range for {self.nbytes} bytes"
            )
        return Packed4Bit(self._buffer[byte_index])

    # -- bulk ----------------------------------------------------------------

    def to_array(self) -> np.ndarray:
        """
        All voxels as a native-endian numpy array.

        INT16_COMPLEX gives an (n, 2) int16 array of (real, imag) rows,
        PACKED4BIT gives one uint8 per voxel.
        """
        return self._decode(0, self.voxel_count)

    def to_i8(self) -> np.ndarray:
        self._require(Mode.INT8)
        return self.to_array()

    def to_i16(self) -> np.ndarray:
        self._require(Mode.INT16)
        return self.to_array()

    def to_u16(self) -> np.ndarray:
        self._require(Mode.UINT16)
        return self.to_array()

    def to_f16(self) -> np.ndarray:
        self._require(Mode.FLOAT16)
        return self.to_array()

    def to_f32(self) -> np.ndarray:
        self._require(Mode.FLOAT32)
        return self.to_array()

    def to_complex_i16(self) -> np.ndarray:
        self._require(Mode.INT16_COMPLEX)
        return self.to_array()

    def to_complex_f32(self) -> np.ndarray:
        self._require(Mode.FLOAT32_COMPLEX)
        return self.to_array()

    def to_packed4(self) -> np.ndarray:
        self._require(Mode.PACKED4BIT)
        return self.to_array()

    def read_into(self, out: np.ndarray) -> int:
        """
        Decode the first len(out) voxels into `out` and return that count.

        The dtype of `out` must be the native dtype of the block mode. `out`
        is left untouched when any check fails.
        """
        if not isinstance(out, np.ndarray):
            raise TypeError(f"read_into() needs a numpy array, got {type(out).__name__}")

        if out.dtype != self.mode.native_dtype:
            raise InvalidModeError(
                f"Block holds {self.mode.name} data, cannot decode into {out.dtype}"
            )

        if self.mode is Mode.INT16_COMPLEX:
            if out.ndim != 2 or out.shape[1] != 2:
                raise InvalidDimensionsError(
                    f"INT16_COMPLEX needs an (n, 2) array, got shape {out.shape}"
                )
        elif out.ndim != 1:
            raise InvalidDimensionsError(f"Expected a 1-d array, got shape {out.shape}")

        count = out.shape[0]
        if count > self.voxel_count or self.mode.data_size(count) > self.nbytes:
            raise InvalidDimensionsError(
                f"Output holds {count} voxels, block only has {self.voxel_count}"
            )

        out[...] = self._decode(0, count)
        return count

    def iter_values(self, chunk_size: int = ITER_CHUNK_SIZE) -> Iterator:
        """Lazily decode voxels, `chunk_size` at a time."""
        for start in range(0, self.voxel_count, chunk_size):
            chunk = self._decode(start, min(chunk_size, self.voxel_count - start))
            for value in chunk:
                yield self._to_python(value)

    def __iter__(self) -> Iterator:
        return self.iter_values()

    # -- raw bytes -----------------------------------------------------------

    def as_bytes(self) -> memoryview:
        return self._buffer.toreadonly()

    def slice_bytes(self, start: int, stop: int) -> memoryview:
        if not 0 <= start <= stop <= self.nbytes:
            raise InvalidDimensionsError(
                f"Byte range {start}..{stop} out of bounds for {self.nbytes} bytes"
            )
        return self.as_bytes()[start:stop]

    def view_native(self, dtype=None) -> np.ndarray:
        """
        Zero-copy numpy view of the data.

        Only possible when the file is in host byte order and the mode is
        not PACKED4BIT. `dtype` may name another type of the same width,
        e.g. uint16 for FLOAT16 bits.
        """
        if self.mode is Mode.PACKED4BIT:
            raise TypeMismatchError("PACKED4BIT data cannot be viewed in place")

        if not self.file_endian.is_native:
            raise TypeMismatchError(
                f"Data is {self.file_endian.name.lower()} endian, host is "
                f"{FileEndian.native().name.lower()} endian"
            )

        dtype = self.mode.native_dtype if dtype is None else np.dtype(dtype)
        if dtype.itemsize != self.mode.native_dtype.itemsize:
            raise TypeMismatchError(
                f"Cannot view {self.mode.name} data as {dtype} "
                f"({dtype.itemsize} bytes, expected {self.mode.native_dtype.itemsize})"
            )

        values = np.frombuffer(self._buffer, dtype=dtype)
        if self.mode is Mode.INT16_COMPLEX:
            values = values.reshape(-1, 2)
        return values


class DataBlockMut(DataBlock):
    """Writable voxel data. Writes are encoded to file byte order in place."""

    def __init__(self, buffer, mode: Mode, file_endian: FileEndian, voxel_count: int | None = None):
        super().__init__(buffer, mode, file_endian, voxel_count)
        if self._buffer.readonly:
            raise TypeMismatchError("Mutable data block needs a writable buffer")

    def as_bytes_mut(self) -> memoryview:
        return self._buffer

    # -- encoding ------------------------------------------------------------

    def _coerce(self, values) -> np.ndarray:
        if self.mode is Mode.PACKED4BIT:
            values = np.asarray(values, dtype=np.int64).reshape(-1)
            if values.size and (values.min() < 0 or values.max() > 0x0F):
                raise ValueError("PACKED4BIT values must lie in 0..15")
            return values.astype(np.uint8)

        values = np.asarray(values, dtype=self.mode.native_dtype)
        if self.mode is Mode.INT16_COMPLEX:
            if values.shape[-1:] != (2,):
                raise InvalidDimensionsError(
                    f"INT16_COMPLEX values need a trailing (real, imag) axis, got shape {values.shape}"
                )
            return values.reshape(-1, 2)
        return values.reshape(-1)

    def _encode(self, start: int, values: np.ndarray) -> None:
        count = values.shape[0]
        if self.mode is Mode.PACKED4BIT:
            raw = np.frombuffer(self._buffer, dtype=np.uint8)
            index = np.arange(start, start + count)
            high = index % 2 == 1
            low_pos, high_pos = index[~high] // 2, index[high] // 2
            raw[low_pos] = (raw[low_pos] & 0xF0) | values[~high]
            raw[high_pos] = (raw[high_pos] & 0x0F) | (values[high] << 4)
            return

        per_voxel = self.mode.scalars_per_voxel
        target = np.frombuffer(self._buffer, dtype=self._file_dtype,
                               count=count * per_voxel, offset=start * self.mode.byte_width)
        target[:] = values.reshape(-1)

    def set(self, values) -> None:
        """
        Overwrite the whole block.

        Exactly `voxel_count` values are required; a shorter or longer
        sequence is rejected before anything is written.
        """
        values = self._coerce(values)
        count = values.shape[0]
        if count != self.voxel_count or self.mode.data_size(count) != self.nbytes:
            raise InvalidDimensionsError(
                f"Block holds {self.voxel_count} voxels ({self.nbytes} bytes), got {count} values"
            )
        self._encode(0, values)

    def set_i8(self, values) -> None:
        self._require(Mode.INT8)
        self.set(values)

    def set_i16(self, values) -> None:
        self._require(Mode.INT16)
        self.set(values)

    def set_u16(self, values) -> None:
        self._require(Mode.UINT16)
        self.set(values)

    def set_f16(self, values) -> None:
        self._require(Mode.FLOAT16)
        self.set(values)

    def set_f32(self, values) -> None:
        self._require(Mode.FLOAT32)
        self.set(values)

    def set_complex_i16(self, values) -> None:
        self._require(Mode.INT16_COMPLEX)
        self.set(values)

    def set_complex_f32(self, values) -> None:
        self._require(Mode.FLOAT32_COMPLEX)
        self.set(values)

    def set_packed4(self, values) -> None:
        self._require(Mode.PACKED4BIT)
        self.set(values)

    def put(self, index: int, value) -> None:
        """Overwrite voxel `index`."""
        self._check_index(index)
        self._encode(index, self._coerce([value]))

    def put_i8(self, index: int, value: int) -> None:
        self._require(Mode.INT8)
        self.put(index, value)

    def put_i16(self, index: int, value: int) -> None:
        self._require(Mode.INT16)
        self.put(index, value)

    def put_u16(self, index: int, value: int) -> None:
        self._require(Mode.UINT16)
        self.put(index, value)

    def put_f16(self, index: int, value: float) -> None:
        self._require(Mode.FLOAT16)
        self.put(index, value)

    def put_f32(self, index: int, value: float) -> None:
        self._require(Mode.FLOAT32)
        self.put(index, value)

    def put_complex_i16(self, index: int, value) -> None:
        self._require(Mode.INT16_COMPLEX)
        self.put(index, tuple(value))

    def put_complex_f32(self, index: int, value: complex) -> None:
        self._require(Mode.FLOAT32_COMPLEX)
        self.put(index, value)

    def put_packed4(self, index: int, value: int) -> None:
        self._require(Mode.PACKED4BIT)
        self.put(index, value)
