"""Size and alignment calculation for protocol types and fields."""

from dataclasses import dataclass

from .modules import ModuleSet, ResolutionError
from .types import (
    EnumType,
    EventStruct,
    FdField,
    Field,
    ListField,
    PadField,
    ScalarField,
    StructType,
    SwitchField,
    TypeDef,
    UnionType,
    XidType,
)

# Builtin sizes in bytes; alignment equals size
BUILTIN_SIZES: dict[str, int] = {
    "CARD8": 1,
    "CARD16": 2,
    "CARD32": 4,
    "CARD64": 8,
    "INT8": 1,
    "INT16": 2,
    "INT32": 4,
    "INT64": 8,
    "BYTE": 1,
    "BOOL": 1,
    "char": 1,
    "float": 4,
    "double": 8,
    "void": 1,
    "fd": 4,
}

# Fixed part of a generic event: type, extension, sequence, length, event_type
GE_HEADER_SIZE = 10
# Offset of the full_sequence word in every event
FULL_SEQUENCE_OFFSET = 32
# Legacy event frame, used for event structs
EVENT_FRAME_SIZE = 32


@dataclass(frozen=True)
class SizeAlign:
    """Size and alignment of a type or field, in bytes."""

    size: int
    align: int

    @classmethod
    def zero(cls) -> "SizeAlign":
        return cls(0, 0)


class LayoutCalculator:
    """Calculate sizes and alignments for types of a module set."""

    def __init__(self, modules: ModuleSet):
        self.modules = modules
        self._cache: dict[tuple[str, str], SizeAlign] = {}

    def calc_type(self, module: str, ref: str) -> SizeAlign:
        """Calculate size for any type reference (builtin or user-defined)."""
        key = (module, ref)
        if key in self._cache:
            return self._cache[key]

        found = self.modules.find_type(module, ref)
        if found is None:
            if ref not in BUILTIN_SIZES:
                raise ResolutionError(f"{module}: unknown type '{ref}'")
            size = BUILTIN_SIZES[ref]
            result = SizeAlign(size, size)
        else:
            declaring, proto_type = found
            if isinstance(proto_type, (XidType, EnumType)):
                result = SizeAlign(4, 4)
            elif isinstance(proto_type, TypeDef):
                result = self.calc_type(declaring, proto_type.old_name)
            elif isinstance(proto_type, StructType):
                result = self.calc_struct(declaring, proto_type.fields)
            elif isinstance(proto_type, UnionType):
                result = self.calc_union(declaring, proto_type.fields)
            elif isinstance(proto_type, EventStruct):
                result = SizeAlign(EVENT_FRAME_SIZE, 4)
            else:
                raise TypeError(f"Unhandled type kind {type(proto_type).__name__}")

        self._cache[key] = result
        return result

    def calc_field(self, module: str, field: Field) -> SizeAlign:
        """Calculate size for a field; variable-length fields count as zero."""
        if isinstance(field, ScalarField):
            return self.calc_type(module, field.type)
        if isinstance(field, PadField):
            return SizeAlign(field.size, 0)
        if isinstance(field, ListField):
            if not field.is_fixed:
                return SizeAlign.zero()
            elem = self.calc_type(module, field.type)
            return SizeAlign(elem.size * (field.length or 0), elem.align)
        if isinstance(field, (SwitchField, FdField)):
            return SizeAlign.zero()
        raise TypeError(f"Unhandled field kind {type(field).__name__}")

    def calc_struct(self, module: str, fields: list[Field]) -> SizeAlign:
        size = 0
        align = 0
        for field in fields:
            info = self.calc_field(module, field)
            size += info.size
            align = max(align, info.align)
        return SizeAlign(size, align)

    def calc_union(self, module: str, fields: list[Field]) -> SizeAlign:
        size = 0
        align = 0
        for field in fields:
            info = self.calc_field(module, field)
            size = max(size, info.size)
            align = max(align, info.align)
        return SizeAlign(size, align)

    def full_sequence_index(self, module: str, fields: list[Field]) -> int | None:
        """Find where a generic event's full_sequence word belongs.

        Returns the index of the field that follows byte 32 of the event, or
        None when no field boundary falls exactly on it.
        """
        offset = GE_HEADER_SIZE
        for i, field in enumerate(fields):
            offset += self.calc_field(module, field).size
            if offset == FULL_SEQUENCE_OFFSET:
                return i + 1
        return None


def size_align(modules: ModuleSet, module: str, item: str | Field) -> SizeAlign:
    """Calculate size and alignment of a type reference or a field."""
    calc = LayoutCalculator(modules)
    if isinstance(item, str):
        return calc.calc_type(module, item)
    return calc.calc_field(module, item)
