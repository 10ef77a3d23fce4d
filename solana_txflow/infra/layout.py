"""
Binary layout encoder for instruction data

Instruction data is a leading discriminant (the instruction index inside
its program) followed by the declared fields, little-endian. Fixed-width
layouts have a known span; layouts with a length-prefixed field compute
their size from the values being encoded.

Usage:
    TRANSFER = InstructionLayout(2, [u64("lamports")])
    data = TRANSFER.encode({"lamports": 1_000})   # 12 bytes
    TRANSFER.decode(data)                          # {"lamports": 1000}
"""

import struct
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from solders.pubkey import Pubkey

from ..errors import EncodingError


class Field:
    """A named field with a fixed span, or span None when variable"""

    span: Optional[int] = None

    def __init__(self, name: str):
        self.name = name

    def encode(self, value: Any) -> bytes:
        raise NotImplementedError

    def decode(self, data: bytes, offset: int) -> Tuple[Any, int]:
        raise NotImplementedError

    def _take(self, data: bytes, offset: int, size: int) -> bytes:
        if offset + size > len(data):
            raise EncodingError(
                f"Not enough data for field '{self.name}': need {size} bytes at offset {offset}",
                field=self.name,
            )
        return data[offset:offset + size]

    def _as_bytes(self, value: Any) -> bytes:
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise EncodingError(
                f"Field '{self.name}' expects bytes, got {type(value).__name__}",
                field=self.name,
            )
        return bytes(value)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.name!r})"


class IntField(Field):
    """Fixed-width integer"""

    def __init__(self, name: str, fmt: str):
        super().__init__(name)
        self.fmt = fmt
        self.span = struct.calcsize(fmt)
        bits = self.span * 8
        if fmt[-1].islower():
            self.min_value = -(1 << (bits - 1))
            self.max_value = (1 << (bits - 1)) - 1
        else:
            self.min_value = 0
            self.max_value = (1 << bits) - 1

    def encode(self, value: Any) -> bytes:
        if isinstance(value, bool) or not isinstance(value, int):
            raise EncodingError(
                f"Field '{self.name}' expects an integer, got {type(value).__name__}",
                field=self.name,
            )
        if not self.min_value <= value <= self.max_value:
            raise EncodingError.out_of_range(self.name, value, self.fmt)
        return struct.pack(self.fmt, value)

    def decode(self, data: bytes, offset: int) -> Tuple[int, int]:
        raw = self._take(data, offset, self.span)
        return struct.unpack(self.fmt, raw)[0], offset + self.span


class BoolField(Field):
    span = 1

    def encode(self, value: Any) -> bytes:
        if not isinstance(value, bool):
            raise EncodingError(f"Field '{self.name}' expects a bool", field=self.name)
        return b"\x01" if value else b"\x00"

    def decode(self, data: bytes, offset: int) -> Tuple[bool, int]:
        raw = self._take(data, offset, 1)
        return raw != b"\x00", offset + 1


class BlobField(Field):
    """Fixed-length raw bytes"""

    def __init__(self, name: str, length: int):
        super().__init__(name)
        self.span = length

    def encode(self, value: Any) -> bytes:
        value = self._as_bytes(value)
        if len(value) != self.span:
            raise EncodingError(
                f"Field '{self.name}' expects {self.span} bytes, got {len(value)}",
                field=self.name,
            )
        return value

    def decode(self, data: bytes, offset: int) -> Tuple[bytes, int]:
        return self._take(data, offset, self.span), offset + self.span


class PubkeyField(BlobField):
    """32-byte address; accepts Pubkey, base58 string or raw bytes"""

    def __init__(self, name: str):
        super().__init__(name, 32)

    def encode(self, value: Any) -> bytes:
        if isinstance(value, str):
            try:
                value = Pubkey.from_string(value)
            except ValueError as e:
                raise EncodingError(f"Field '{self.name}' is not a valid address: {e}", field=self.name) from e
        if isinstance(value, Pubkey):
            value = bytes(value)
        return super().encode(value)

    def decode(self, data: bytes, offset: int) -> Tuple[Pubkey, int]:
        raw, offset = super().decode(data, offset)
        return Pubkey.from_bytes(raw), offset


class BytesField(Field):
    """Length-prefixed bytes (u64 length by default, bincode style)"""

    span = None

    def __init__(self, name: str, prefix_fmt: str = "<Q"):
        super().__init__(name)
        self.prefix_fmt = prefix_fmt
        self._prefix = IntField(f"{name}.length", prefix_fmt)

    def encode(self, value: Any) -> bytes:
        value = self._as_bytes(value)
        return self._prefix.encode(len(value)) + value

    def decode(self, data: bytes, offset: int) -> Tuple[bytes, int]:
        length, offset = self._prefix.decode(data, offset)
        return self._take(data, offset, length), offset + length


class StringField(BytesField):
    """Length-prefixed UTF-8 string"""

    def encode(self, value: Any) -> bytes:
        if not isinstance(value, str):
            raise EncodingError(f"Field '{self.name}' expects a string", field=self.name)
        return super().encode(value.encode("utf-8"))

    def decode(self, data: bytes, offset: int) -> Tuple[str, int]:
        raw, offset = super().decode(data, offset)
        try:
            return raw.decode("utf-8"), offset
        except UnicodeDecodeError as e:
            raise EncodingError(f"Field '{self.name}' is not valid UTF-8: {e}", field=self.name) from e


def u8(name: str) -> IntField:
    return IntField(name, "<B")


def u16(name: str) -> IntField:
    return IntField(name, "<H")


def u32(name: str) -> IntField:
    return IntField(name, "<I")


def u64(name: str) -> IntField:
    return IntField(name, "<Q")


def i8(name: str) -> IntField:
    return IntField(name, "<b")


def i16(name: str) -> IntField:
    return IntField(name, "<h")


def i32(name: str) -> IntField:
    return IntField(name, "<i")


def i64(name: str) -> IntField:
    return IntField(name, "<q")


def boolean(name: str) -> BoolField:
    return BoolField(name)


def pubkey(name: str) -> PubkeyField:
    return PubkeyField(name)


def blob(name: str, length: int) -> BlobField:
    return BlobField(name, length)


def bytes_(name: str, prefix_fmt: str = "<Q") -> BytesField:
    return BytesField(name, prefix_fmt)


def string(name: str, prefix_fmt: str = "<Q") -> StringField:
    return StringField(name, prefix_fmt)


class InstructionLayout:
    """
    Ordered field schema for one instruction type

    Args:
        index: Instruction discriminant written before the fields
        fields: Declared fields, in wire order
        index_format: struct format of the discriminant (u32 for the
            system program, u8 for most others)
        name: Optional label for logs and errors
    """

    def __init__(
        self,
        index: int,
        fields: Sequence[Field] = (),
        index_format: str = "<I",
        name: Optional[str] = None,
    ):
        self.index = index
        self.fields: List[Field] = list(fields)
        self.name = name or f"instruction_{index}"
        self._discriminant = IntField("instruction", index_format)
        # Validate the discriminant eagerly so a bad layout fails at definition
        self._prefix = self._discriminant.encode(index)

        names = [f.name for f in self.fields]
        if len(set(names)) != len(names):
            raise EncodingError(f"Duplicate field names in layout {self.name}: {names}")

    @property
    def span(self) -> Optional[int]:
        """Total byte length, or None if any field is variable-length"""
        total = self._discriminant.span
        for f in self.fields:
            if f.span is None:
                return None
            total += f.span
        return total

    def encode(self, values: Optional[Mapping[str, Any]] = None) -> bytes:
        """
        Encode the discriminant followed by every declared field

        Raises:
            EncodingError: missing field, out-of-range number or bad width
        """
        values = values or {}
        parts = [self._prefix]
        for f in self.fields:
            if f.name not in values:
                raise EncodingError.missing_field(f.name)
            parts.append(f.encode(values[f.name]))
        data = b"".join(parts)

        span = self.span
        if span is not None and len(data) != span:
            raise EncodingError(f"Encoded {len(data)} bytes for {self.name}, expected {span}")
        return data

    def decode(self, data: bytes) -> Dict[str, Any]:
        """Decode instruction data produced by encode(); checks the discriminant"""
        index, offset = self._discriminant.decode(data, 0)
        if index != self.index:
            raise EncodingError(
                f"Instruction index mismatch for {self.name}: expected {self.index}, got {index}",
                field="instruction",
            )
        values: Dict[str, Any] = {}
        for f in self.fields:
            values[f.name], offset = f.decode(data, offset)
        if offset != len(data):
            raise EncodingError(f"{len(data) - offset} trailing bytes after {self.name}")
        return values

    def __repr__(self) -> str:
        return f"InstructionLayout({self.name}, index={self.index}, fields={self.fields})"


def encode_data(layout: InstructionLayout, values: Optional[Mapping[str, Any]] = None) -> bytes:
    """Populate instruction data for a layout"""
    return layout.encode(values)


def decode_index(data: bytes, index_format: str = "<I") -> int:
    """Read just the discriminant of instruction data"""
    field = IntField("instruction", index_format)
    return field.decode(data, 0)[0]
