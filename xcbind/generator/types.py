"""Type definitions for parsed XCB protocol modules."""

from dataclasses import dataclass, field
from enum import StrEnum, auto

from dataclasses_json import DataClassJsonMixin


class ListLength(StrEnum):
    """How the element count of a list field is known."""

    FIXED = auto()  # Literal <value> count
    EXPRESSION = auto()  # Computed at run time from other fields
    DYNAMIC = auto()  # No length expression at all


@dataclass
class ScalarField(DataClassJsonMixin):
    """A typed value field.

    Computed fields (``<exprfield>``) take part in the layout but are filled in
    by the transport library, so they never become call parameters.
    """

    name: str
    type: str
    computed: bool = False


@dataclass
class PadField(DataClassJsonMixin):
    name: str
    size: int


@dataclass
class ListField(DataClassJsonMixin):
    """Represents a repeated field.

    For lists:
    - length_kind=FIXED: ``length`` holds the element count
    - otherwise ``length`` is None and the list has no fixed layout
    """

    name: str
    type: str
    length: int | None
    length_kind: ListLength

    @property
    def is_fixed(self) -> bool:
        return self.length_kind == ListLength.FIXED


@dataclass
class SwitchField(DataClassJsonMixin):
    name: str


@dataclass
class FdField(DataClassJsonMixin):
    name: str


Field = ScalarField | PadField | ListField | SwitchField | FdField


@dataclass
class XidType(DataClassJsonMixin):
    """An opaque 32-bit resource id (``xidtype`` and ``xidunion``)."""

    name: str


@dataclass
class EnumItem(DataClassJsonMixin):
    name: str
    value: int


@dataclass
class EnumType(DataClassJsonMixin):
    name: str
    items: list[EnumItem]


@dataclass
class TypeDef(DataClassJsonMixin):
    name: str
    old_name: str


@dataclass
class StructType(DataClassJsonMixin):
    name: str
    fields: list[Field]


@dataclass
class UnionType(DataClassJsonMixin):
    name: str
    fields: list[Field]


@dataclass
class AllowedEvents(DataClassJsonMixin):
    """Selects the events of one extension for an event struct.

    Events match when their xge flag equals ``xge`` and their number lies in
    ``[opcode_min, opcode_max)``.
    """

    extension: str
    xge: bool
    opcode_min: int
    opcode_max: int


@dataclass
class EventStruct(DataClassJsonMixin):
    name: str
    allowed: list[AllowedEvents]


ProtoType = XidType | EnumType | TypeDef | StructType | UnionType | EventStruct


@dataclass
class Reply(DataClassJsonMixin):
    fields: list[Field]


@dataclass
class Request(DataClassJsonMixin):
    name: str
    opcode: int
    fields: list[Field]
    reply: Reply | None


@dataclass
class Event(DataClassJsonMixin):
    name: str
    number: int
    fields: list[Field]
    xge: bool = False
    no_sequence_number: bool = False


@dataclass
class EventCopy(DataClassJsonMixin):
    name: str
    number: int
    ref: str


@dataclass
class Error(DataClassJsonMixin):
    name: str
    number: int
    fields: list[Field]


@dataclass
class ErrorCopy(DataClassJsonMixin):
    name: str
    number: int
    ref: str


@dataclass
class Module(DataClassJsonMixin):
    """Represents one parsed protocol description (core or extension)."""

    name: str
    extension_name: str | None = None
    extension_xname: str | None = None
    major_version: str | None = None
    minor_version: str | None = None
    imports: list[str] = field(default_factory=list)
    types: dict[str, ProtoType] = field(default_factory=dict)
    requests: list[Request] = field(default_factory=list)
    events: list[Event | EventCopy] = field(default_factory=list)
    errors: list[Error | ErrorCopy] = field(default_factory=list)

    @property
    def is_extension(self) -> bool:
        return self.extension_name is not None


# Built-in primitive types and their Rust spellings
BUILTIN_TYPES: dict[str, str] = {
    "CARD8": "u8",
    "CARD16": "u16",
    "CARD32": "u32",
    "CARD64": "u64",
    "INT8": "i8",
    "INT16": "i16",
    "INT32": "i32",
    "INT64": "i64",
    "BYTE": "u8",
    "BOOL": "u8",
    "char": "c_char",
    "float": "f32",
    "double": "f64",
    "void": "c_void",
    "fd": "i32",
}
