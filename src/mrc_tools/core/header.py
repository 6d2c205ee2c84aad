"""
The fixed 1024-byte MRC header.

The record is held in memory as plain Python values. Only its serialized
form is in file byte order, and that order is read from the machine stamp
(`machst`) at byte 212. The two words packed in the reserved region
(EXTTYP at byte 104, NVERSION at byte 108) are kept little endian in
`extra` and converted on decode/encode like every other numeric field.
"""
from dataclasses import dataclass, replace
from functools import lru_cache

import numpy as np

from .endian import FileEndian
from .mode import Mode
from ..io.exceptions import InvalidHeaderError
from ..configs import HEADER_SIZE, HEADER_FIELDS, BYTE_FIELDS, \
    EXTTYP_OFFSET, NVERSION_OFFSET, MAP_SIGNATURE, MACHST_LITTLE, \
    ISPG_RANGES, AXIS_PERMUTATION, NUM_LABELS, LABEL_SIZE

_MACHST_OFFSET = dict((f[0], f[1]) for f in HEADER_FIELDS)["machst"]
_SUBFIELD_OFFSETS = (EXTTYP_OFFSET, NVERSION_OFFSET)


@lru_cache(maxsize=None)
def _numeric_dtype(endian: FileEndian) -> np.dtype:
    """Structured dtype over the numeric fields, at their fixed offsets."""
    names, formats, offsets = [], [], []
    for name, offset, code, shape in HEADER_FIELDS:
        if name in BYTE_FIELDS:
            continue
        names.append(name)
        formats.append((endian.dtype(code), shape) if shape else endian.dtype(code))
        offsets.append(offset)

    return np.dtype({
        "names": names,
        "formats": formats,
        "offsets": offsets,
        "itemsize": HEADER_SIZE,
    })


def _swap_subfields(extra: bytes) -> bytes:
    """Reverse the byte order of EXTTYP and NVERSION inside `extra`."""
    buf = bytearray(extra)
    for offset in _SUBFIELD_OFFSETS:
        buf[offset:offset + 4] = buf[offset:offset + 4][::-1]
    return bytes(buf)


_FLOAT_FIELDS = frozenset(f[0] for f in HEADER_FIELDS if f[2] == "f4")


def _as_f32(value) -> np.float32:
    # numpy scalars keep their bit pattern, NaN payloads included
    return value if isinstance(value, np.float32) else np.float32(value)


def _swap_i32(value: int) -> int:
    return np.int32(value).byteswap().item()


def _swap_f32(value) -> np.float32:
    return _as_f32(value).byteswap()


@dataclass
class Header:
    nx: int = 0
    ny: int = 0
    nz: int = 0
    mode: int = 0
    nxstart: int = 0
    nystart: int = 0
    nzstart: int = 0
    mx: int = 0
    my: int = 0
    mz: int = 0
    xlen: np.float32 = 0.0
    ylen: np.float32 = 0.0
    zlen: np.float32 = 0.0
    alpha: np.float32 = 0.0
    beta: np.float32 = 0.0
    gamma: np.float32 = 0.0
    mapc: int = 1
    mapr: int = 2
    maps: int = 3
    dmin: np.float32 = 0.0
    dmax: np.float32 = 0.0
    dmean: np.float32 = 0.0
    ispg: int = 0
    nsymbt: int = 0
    extra: bytes = bytes(100)
    origin: tuple[np.float32, np.float32, np.float32] = (0.0, 0.0, 0.0)
    map: bytes = MAP_SIGNATURE
    machst: bytes = MACHST_LITTLE
    rms: np.float32 = 0.0
    nlabl: int = 0
    label: bytes = bytes(800)

    def __setattr__(self, name, value):
        # float fields are held as float32, the width they have on disk
        if name in _FLOAT_FIELDS:
            value = tuple(_as_f32(v) for v in value) if name == "origin" else _as_f32(value)
        super().__setattr__(name, value)

    # -- codec ---------------------------------------------------------------

    @classmethod
    def decode(cls, raw) -> "Header":
        """
        Decode a 1024-byte header.

        The byte order is taken from the machine stamp and applied to every
        integer and float field. `map` and `machst` are copied verbatim.
        """
        raw = bytes(raw)
        if len(raw) != HEADER_SIZE:
            raise InvalidHeaderError(f"Header must be {HEADER_SIZE} bytes, got {len(raw)}")

        endian = FileEndian.from_machst(raw[_MACHST_OFFSET:_MACHST_OFFSET + 4])
        record = np.frombuffer(raw, dtype=_numeric_dtype(endian), count=1)[0]

        values = {}
        for name, offset, code, shape in HEADER_FIELDS:
            if name in BYTE_FIELDS:
                values[name] = raw[offset:offset + BYTE_FIELDS[name]]
            elif shape:
                values[name] = tuple(record[name].astype(np.float32))
            elif code == "f4":
                values[name] = record[name]
            else:
                values[name] = record[name].item()

        if endian is FileEndian.BIG:
            values["extra"] = _swap_subfields(values["extra"])

        return cls(**values)

    def encode(self) -> bytes:
        out = bytearray(HEADER_SIZE)
        self.encode_into(out)
        return bytes(out)

    def encode_into(self, out) -> None:
        """Write the header into a writable 1024-byte buffer, in the byte order of `machst`."""
        view = memoryview(out).cast("B")
        if len(view) != HEADER_SIZE:
            raise InvalidHeaderError(f"Header buffer must be {HEADER_SIZE} bytes, got {len(view)}")

        endian = self.file_endian
        record = np.frombuffer(view, dtype=_numeric_dtype(endian), count=1)

        for name, offset, code, shape in HEADER_FIELDS:
            if name not in BYTE_FIELDS:
                record[name] = getattr(self, name)
                continue

            value = bytes(getattr(self, name))
            if len(value) != BYTE_FIELDS[name]:
                raise InvalidHeaderError(
                    f"Field '{name}' must be {BYTE_FIELDS[name]} bytes, got {len(value)}"
                )
            if name == "extra" and endian is FileEndian.BIG:
                value = _swap_subfields(value)
            view[offset:offset + len(value)] = value

    # -- validation ----------------------------------------------------------

    def validate(self) -> bool:
        if self.nx <= 0 or self.ny <= 0 or self.nz <= 0:
            return False

        if Mode.from_code(self.mode) is None:
            return False

        if bytes(self.map) != MAP_SIGNATURE:
            return False

        if {self.mapc, self.mapr, self.maps} != AXIS_PERMUTATION:
            return False

        return any(lo <= self.ispg <= hi for lo, hi in ISPG_RANGES)

    # -- derived values ------------------------------------------------------

    @property
    def file_endian(self) -> FileEndian:
        return FileEndian.from_machst(self.machst)

    def set_file_endian(self, endian: FileEndian) -> None:
        self.machst = endian.machst

    @property
    def dimensions(self) -> tuple[int, int, int]:
        return self.nx, self.ny, self.nz

    def voxel_count(self) -> int:
        if self.nx <= 0 or self.ny <= 0 or self.nz <= 0:
            return 0
        return self.nx * self.ny * self.nz

    def data_size(self) -> int:
        """Size in bytes of the voxel data, 0 if the mode is not registered."""
        mode = Mode.from_code(self.mode)
        if mode is None:
            return 0
        return mode.data_size(self.voxel_count())

    def data_offset(self) -> int:
        return HEADER_SIZE + self.nsymbt

    # -- reserved region sub-fields -----------------------------------------

    def _get_word(self, offset: int) -> int:
        return int.from_bytes(self.extra[offset:offset + 4], "little", signed=True)

    def _set_word(self, offset: int, value: int) -> None:
        buf = bytearray(self.extra)
        buf[offset:offset + 4] = int(value).to_bytes(4, "little", signed=True)
        self.extra = bytes(buf)

    @property
    def exttyp(self) -> int:
        return self._get_word(EXTTYP_OFFSET)

    def set_exttyp(self, value: int) -> None:
        self._set_word(EXTTYP_OFFSET, value)

    @property
    def exttyp_str(self) -> str:
        return self.extra[EXTTYP_OFFSET:EXTTYP_OFFSET + 4].decode("ascii")

    def set_exttyp_str(self, value: str) -> None:
        raw = value.encode("ascii")
        if len(raw) != 4:
            raise ValueError(f"EXTTYP must be exactly 4 characters, got {value!r}")
        self.set_exttyp(int.from_bytes(raw, "little", signed=True))

    @property
    def nversion(self) -> int:
        return self._get_word(NVERSION_OFFSET)

    def set_nversion(self, value: int) -> None:
        self._set_word(NVERSION_OFFSET, value)

    # -- labels --------------------------------------------------------------

    def labels(self) -> list[str]:
        count = max(0, min(self.nlabl, NUM_LABELS))
        return [
            self.label[i * LABEL_SIZE:(i + 1) * LABEL_SIZE].decode("ascii", errors="replace").rstrip(" \x00")
            for i in range(count)
        ]

    def add_label(self, text: str) -> None:
        count = max(0, min(self.nlabl, NUM_LABELS))
        if count == NUM_LABELS:
            raise ValueError(f"All {NUM_LABELS} labels are already in use")

        raw = text.encode("ascii")
        if len(raw) > LABEL_SIZE:
            raise ValueError(f"Label longer than {LABEL_SIZE} characters: {text!r}")

        buf = bytearray(self.label)
        buf[count * LABEL_SIZE:(count + 1) * LABEL_SIZE] = raw.ljust(LABEL_SIZE, b" ")
        self.label = bytes(buf)
        self.nlabl = count + 1

    # -- byte order ----------------------------------------------------------

    def swap_endian(self) -> None:
        """
        Byte-reverse every numeric field in place, EXTTYP and NVERSION included.

        `map` and `machst` are byte sequences and are left untouched, so the
        stamp keeps describing the order the file was written in. Floats are
        swapped as raw 32-bit patterns, so NaN payloads survive.
        """
        for name, offset, code, shape in HEADER_FIELDS:
            if name in BYTE_FIELDS:
                continue
            swap = _swap_f32 if code == "f4" else _swap_i32
            value = getattr(self, name)
            if shape:
                setattr(self, name, tuple(swap(v) for v in value))
            else:
                setattr(self, name, swap(value))

        self.extra = _swap_subfields(self.extra)

    def copy(self) -> "Header":
        return replace(self)
