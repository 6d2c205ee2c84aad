import sys
import logging
from enum import Enum

import numpy as np

from ..configs import MACHST_LITTLE, MACHST_BIG

logger = logging.getLogger(__name__)


class FileEndian(Enum):
    LITTLE = "<"
    BIG = ">"

    @classmethod
    def from_machst(cls, machst: bytes) -> "FileEndian":
        """
        Byte order from the 4-byte machine stamp.

        44 44 xx xx is little endian, 11 11 xx xx is big endian, anything
        else is read as little endian.
        """
        machst = bytes(machst)
        if machst[:2] == MACHST_LITTLE[:2]:
            return cls.LITTLE
        if machst[:2] == MACHST_BIG[:2]:
            return cls.BIG

        if any(machst[2:4]):
            logger.warning(
                "Unrecognised machine stamp %s, assuming little endian", machst.hex(" ")
            )
        return cls.LITTLE

    @classmethod
    def native(cls) -> "FileEndian":
        return cls.LITTLE if sys.byteorder == "little" else cls.BIG

    @property
    def is_native(self) -> bool:
        return self is FileEndian.native()

    @property
    def prefix(self) -> str:
        return self.value

    @property
    def machst(self) -> bytes:
        return MACHST_LITTLE if self is FileEndian.LITTLE else MACHST_BIG

    def dtype(self, code) -> np.dtype:
        """numpy dtype of `code` in this byte order."""
        return np.dtype(code).newbyteorder(self.prefix)

    def swapped(self) -> "FileEndian":
        return FileEndian.BIG if self is FileEndian.LITTLE else FileEndian.LITTLE
