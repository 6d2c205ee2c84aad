from ..io.exceptions import InvalidDimensionsError, TypeMismatchError


class ExtHeader:
    """Opaque extended header bytes. No byte order conversion is applied."""

    def __init__(self, buffer=b""):
        self._buffer = memoryview(buffer).cast("B")

    def __len__(self) -> int:
        return len(self._buffer)

    def __bytes__(self) -> bytes:
        return self._buffer.tobytes()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(<{len(self)} bytes>)"

    def as_bytes(self) -> memoryview:
        return self._buffer.toreadonly()


class ExtHeaderMut(ExtHeader):

    def __init__(self, buffer):
        super().__init__(buffer)
        if self._buffer.readonly:
            raise TypeMismatchError("Mutable extended header needs a writable buffer")

    def as_bytes_mut(self) -> memoryview:
        return self._buffer

    def write(self, data) -> None:
        data = memoryview(data).cast("B")
        if len(data) != len(self._buffer):
            raise InvalidDimensionsError(
                f"Extended header is {len(self._buffer)} bytes, got {len(data)}"
            )
        self._buffer[:] = data
