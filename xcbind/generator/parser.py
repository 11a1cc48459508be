"""XCB protocol description parser using ElementTree."""

import os
import xml.etree.ElementTree as ET

from .names import sanitize_field_name
from .types import (
    AllowedEvents,
    EnumItem,
    EnumType,
    Error,
    ErrorCopy,
    Event,
    EventCopy,
    EventStruct,
    Field,
    FdField,
    ListField,
    ListLength,
    Module,
    PadField,
    ProtoType,
    Reply,
    Request,
    ScalarField,
    StructType,
    SwitchField,
    TypeDef,
    UnionType,
    XidType,
)

# Error number used by extensions for "any error"
GENERIC_ERROR_NUMBER = -1
GENERIC_ERROR_CODE = 255


class GenerationError(RuntimeError):
    """Base class for errors that abort a generation run."""


class ParseError(GenerationError):
    """Raised when a protocol description cannot be read or is malformed."""


def _attr(module: str, element: ET.Element, name: str) -> str:
    value = element.get(name)
    if value is None:
        raise ParseError(f"{module}: <{element.tag}> is missing required attribute '{name}'")
    return value


def _int_attr(module: str, element: ET.Element, name: str) -> int:
    value = _attr(module, element, name)
    try:
        return int(value)
    except ValueError:
        raise ParseError(
            f"{module}: <{element.tag}> attribute '{name}' is not an integer: {value!r}"
        ) from None


def _int_text(module: str, element: ET.Element) -> int:
    text = (element.text or "").strip()
    try:
        return int(text)
    except ValueError:
        raise ParseError(f"{module}: <{element.tag}> does not hold an integer: {text!r}") from None


def _bool_attr(element: ET.Element, name: str) -> bool:
    return element.get(name, "false") == "true"


def _list_length(module: str, element: ET.Element) -> tuple[int | None, ListLength]:
    children = [c for c in element if c.tag != "doc"]
    if not children:
        return None, ListLength.DYNAMIC
    if len(children) == 1 and children[0].tag == "value":
        return _int_text(module, children[0]), ListLength.FIXED
    return None, ListLength.EXPRESSION


def parse_fields(module: str, element: ET.Element) -> list[Field]:
    """Parse the field list of a struct, union, request, reply, event or error."""
    fields: list[Field] = []
    pad_count = 0

    for child in element:
        if child.tag in ("field", "exprfield"):
            fields.append(
                ScalarField(
                    name=sanitize_field_name(_attr(module, child, "name")),
                    type=_attr(module, child, "type"),
                    computed=child.tag == "exprfield",
                )
            )
        elif child.tag == "pad":
            if child.get("bytes") is None and child.get("align") is not None:
                # Alignment markers only matter to the wire serializer
                continue
            fields.append(PadField(name=f"pad{pad_count}", size=_int_attr(module, child, "bytes")))
            pad_count += 1
        elif child.tag == "list":
            length, length_kind = _list_length(module, child)
            fields.append(
                ListField(
                    name=sanitize_field_name(_attr(module, child, "name")),
                    type=_attr(module, child, "type"),
                    length=length,
                    length_kind=length_kind,
                )
            )
        elif child.tag == "switch":
            fields.append(SwitchField(name=sanitize_field_name(_attr(module, child, "name"))))
        elif child.tag == "fd":
            fields.append(FdField(name=sanitize_field_name(_attr(module, child, "name"))))

    return fields


def _parse_enum(module: str, element: ET.Element) -> EnumType:
    items: list[EnumItem] = []
    next_value = 0

    for item in element.iter("item"):
        name = _attr(module, item, "name")
        value = item.find("value")
        bit = item.find("bit")
        if value is not None:
            number = _int_text(module, value)
        elif bit is not None:
            number = 1 << _int_text(module, bit)
        else:
            number = next_value
        items.append(EnumItem(name=name, value=number))
        next_value = number + 1

    return EnumType(name=_attr(module, element, "name"), items=items)


def _parse_request(module: str, element: ET.Element) -> Request:
    reply_element = element.find("reply")
    reply = Reply(fields=parse_fields(module, reply_element)) if reply_element is not None else None
    return Request(
        name=_attr(module, element, "name"),
        opcode=_int_attr(module, element, "opcode"),
        fields=parse_fields(module, element),
        reply=reply,
    )


def _parse_event_struct(module: str, element: ET.Element) -> EventStruct:
    allowed = [
        AllowedEvents(
            extension=_attr(module, child, "extension"),
            xge=_bool_attr(child, "xge"),
            opcode_min=_int_attr(module, child, "opcode-min"),
            opcode_max=_int_attr(module, child, "opcode-max"),
        )
        for child in element.iter("allowed")
    ]
    return EventStruct(name=_attr(module, element, "name"), allowed=allowed)


def _error_number(module: str, element: ET.Element) -> int:
    number = _int_attr(module, element, "number")
    if number == GENERIC_ERROR_NUMBER:
        return GENERIC_ERROR_CODE
    return number


def _add_type(module: Module, proto_type: ProtoType) -> None:
    """Store a type under its name; an enum sharing the name moves to ``<name>#enum``."""
    key = proto_type.name
    existing = module.types.get(key)
    if isinstance(proto_type, EnumType):
        if existing is not None:
            key = f"{key}#enum"
    elif isinstance(existing, EnumType):
        module.types[f"{key}#enum"] = module.types.pop(key)
    module.types[key] = proto_type


def parse_module(name: str, text: str) -> Module:
    """Parse the text of one protocol description into a Module."""
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise ParseError(f"{name}: not well-formed: {e}") from e

    if root.tag != "xcb":
        raise ParseError(f"{name}: root element is <{root.tag}>, expected <xcb>")

    module = Module(
        name=name,
        extension_name=root.get("extension-name"),
        extension_xname=root.get("extension-xname"),
        major_version=root.get("major-version"),
        minor_version=root.get("minor-version"),
    )

    for child in root:
        tag = child.tag
        if tag == "import":
            import_name = (child.text or "").strip()
            if not import_name:
                raise ParseError(f"{name}: <import> names no module")
            module.imports.append(import_name)
        elif tag in ("xidtype", "xidunion"):
            type_name = _attr(name, child, "name")
            _add_type(module, XidType(name=type_name))
        elif tag == "enum":
            _add_type(module, _parse_enum(name, child))
        elif tag == "typedef":
            new_name = _attr(name, child, "newname")
            _add_type(module, TypeDef(name=new_name, old_name=_attr(name, child, "oldname")))
        elif tag == "struct":
            type_name = _attr(name, child, "name")
            _add_type(module, StructType(name=type_name, fields=parse_fields(name, child)))
        elif tag == "union":
            type_name = _attr(name, child, "name")
            _add_type(module, UnionType(name=type_name, fields=parse_fields(name, child)))
        elif tag == "eventstruct":
            event_struct = _parse_event_struct(name, child)
            _add_type(module, event_struct)
        elif tag == "request":
            module.requests.append(_parse_request(name, child))
        elif tag == "event":
            module.events.append(
                Event(
                    name=_attr(name, child, "name"),
                    number=_int_attr(name, child, "number"),
                    fields=parse_fields(name, child),
                    xge=_bool_attr(child, "xge"),
                    no_sequence_number=_bool_attr(child, "no-sequence-number"),
                )
            )
        elif tag == "eventcopy":
            module.events.append(
                EventCopy(
                    name=_attr(name, child, "name"),
                    number=_int_attr(name, child, "number"),
                    ref=_attr(name, child, "ref"),
                )
            )
        elif tag == "error":
            module.errors.append(
                Error(
                    name=_attr(name, child, "name"),
                    number=_error_number(name, child),
                    fields=parse_fields(name, child),
                )
            )
        elif tag == "errorcopy":
            module.errors.append(
                ErrorCopy(
                    name=_attr(name, child, "name"),
                    number=_error_number(name, child),
                    ref=_attr(name, child, "ref"),
                )
            )

    return module


def module_path(name: str, xml_dir: str) -> str:
    return os.path.join(xml_dir, f"{name}.xml")


def load_module(name: str, xml_dir: str) -> Module:
    """Read and parse the protocol description of a module."""
    path = module_path(name, xml_dir)
    try:
        with open(path, encoding="utf-8") as f:
            text = f.read()
    except OSError as e:
        raise ParseError(f"{name}: cannot read {path}: {e.strerror}") from e

    return parse_module(name, text)
