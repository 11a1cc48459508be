"""Rust FFI declaration generator for XCB protocol modules."""

from dataclasses import dataclass, field
from typing import ClassVar

from jinja2 import Environment, PackageLoader

from .modules import ModuleSet
from .names import constant_name, convert_name
from .sizes import LayoutCalculator
from .types import (
    EnumType,
    Error,
    ErrorCopy,
    Event,
    EventCopy,
    EventStruct,
    FdField,
    Field,
    ListField,
    ListLength,
    Module,
    PadField,
    Request,
    ScalarField,
    StructType,
    SwitchField,
    TypeDef,
    UnionType,
    XidType,
)

env = Environment(
    loader=PackageLoader("xcbind.generator", "templates"),
    trim_blocks=True,
    lstrip_blocks=True,
    keep_trailing_newline=True,
    line_comment_prefix="%%",
    line_statement_prefix="%",
)

template = env.get_template("rust.rs.j2")

CONNECTION_PARAM = "c: *mut xcb_connection_t"
VOID_COOKIE = "xcb_void_cookie_t"
GENERIC_ITERATOR = "xcb_generic_iterator_t"
RAW_GENERIC_EVENT = "xcb_raw_generic_event_t"


@dataclass
class RustField:
    name: str
    type: str


@dataclass
class RustConst:
    name: str
    type: str
    value: int | str


@dataclass
class Consts:
    kind: ClassVar[str] = "consts"
    consts: list[RustConst]


@dataclass
class Alias:
    kind: ClassVar[str] = "alias"
    name: str
    target: str


@dataclass
class Aggregate:
    """A ``#[repr(C)]`` struct or union."""

    kind: ClassVar[str] = "aggregate"
    name: str
    fields: list[RustField]
    union: bool = False
    packed: bool = False


@dataclass
class Function:
    name: str
    params: list[str]
    ret: str | None = None


@dataclass
class Extern:
    kind: ClassVar[str] = "extern"
    functions: list[Function] = field(default_factory=list)
    statics: list[RustField] = field(default_factory=list)


Item = Consts | Alias | Aggregate | Extern


@dataclass
class ModuleView:
    name: str
    uses: list[str]
    items: list[Item]


class RustRenderer:
    """Turn a module set into template-ready declarations."""

    def __init__(self, modules: ModuleSet):
        self.modules = modules
        self.layout = LayoutCalculator(modules)

    def _fields(self, module: str, fields: list[Field]) -> list[RustField]:
        """Render the fields that have a fixed layout."""
        out: list[RustField] = []
        for f in fields:
            if isinstance(f, ScalarField):
                out.append(RustField(f.name, self.modules.resolve(module, f.type)))
            elif isinstance(f, PadField):
                out.append(RustField(f.name, "u8" if f.size == 1 else f"[u8; {f.size}]"))
            elif isinstance(f, ListField) and f.is_fixed:
                elem = self.modules.resolve(module, f.type)
                out.append(RustField(f.name, f"[{elem}; {f.length}]"))
        return out

    def _split_head(self, module: str, fields: list[Field]) -> tuple[list[RustField], list[RustField]]:
        """Split off the first field, which sits in byte 1 of requests, replies and events."""
        head = self._fields(module, fields[:1])
        if not head:
            taken = {f.name for f in fields}
            head = [RustField("pad0" if "pad0" not in taken else "pad", "u8")]
        return head, self._fields(module, fields[1:])

    def _iterator(self, module: str, name: str) -> list[Item]:
        symbol = self.modules.symbol(module, name)
        iterator = f"{symbol}_iterator_t"
        return [
            Aggregate(
                iterator,
                [
                    RustField("data", f"*mut {symbol}_t"),
                    RustField("rem", "c_int"),
                    RustField("index", "c_int"),
                ],
            ),
            Extern(
                functions=[
                    Function(f"{symbol}_next", [f"i: *mut {iterator}"]),
                    Function(f"{symbol}_end", [f"i: {iterator}"], GENERIC_ITERATOR),
                ]
            ),
        ]

    def _extension_header(self, module: Module) -> list[Item]:
        prefix = self.modules.prefix(module.name)
        versions = []
        if module.major_version is not None:
            versions.append(
                RustConst(f"{constant_name(prefix)}_MAJOR_VERSION", "u32", module.major_version)
            )
        if module.minor_version is not None:
            versions.append(
                RustConst(f"{constant_name(prefix)}_MINOR_VERSION", "u32", module.minor_version)
            )

        items: list[Item] = [Consts(versions)] if versions else []
        items.append(Extern(statics=[RustField(f"{prefix}_id", "xcb_extension_t")]))
        return items

    def _enum(self, module: Module, enum: EnumType, claimed: dict[str, bool]) -> list[Item]:
        """Render enum constants.

        ``claimed`` maps the canonical names of the module's other types to
        whether they are id types. An id type already provides the alias; any
        other type owns the name, so the constants fall back to ``u32``.
        """
        canonical = self.modules.canonical(module.name, enum.name)
        symbol = self.modules.symbol(module.name, enum.name)

        items: list[Item] = []
        const_type = canonical
        if canonical not in claimed:
            items.append(Alias(canonical, "u32"))
        elif not claimed[canonical]:
            const_type = "u32"

        consts = [
            RustConst(constant_name(f"{symbol}_{convert_name(item.name)}"), const_type, item.value)
            for item in enum.items
        ]
        if consts:
            items.append(Consts(consts))
        return items

    def _event_xge(self, module: str, event: Event | EventCopy) -> bool:
        if isinstance(event, EventCopy):
            module, event = self.modules.resolve_event_copy(module, event)
        return event.xge

    def _event_struct(self, module: Module, event_struct: EventStruct) -> Aggregate:
        members: list[tuple[int, RustField]] = []
        for allowed in event_struct.allowed:
            declaring = self.modules.extension_module(allowed.extension)
            for event in self.modules[declaring].events:
                if self._event_xge(declaring, event) != allowed.xge:
                    continue
                if not allowed.opcode_min <= event.number < allowed.opcode_max:
                    continue
                name = self.modules.canonical(declaring, event.name, "event_t")
                members.append((event.number, RustField(convert_name(event.name), name)))

        members.sort(key=lambda m: m[0])
        fields = [f for _, f in members]
        fields.append(RustField("event_header", RAW_GENERIC_EVENT))
        return Aggregate(self.modules.canonical(module.name, event_struct.name), fields, union=True)

    def _types(self, module: Module) -> list[Item]:
        claimed = {
            self.modules.canonical(module.name, t.name): isinstance(t, XidType)
            for t in module.types.values()
            if not isinstance(t, EnumType)
        }

        items: list[Item] = []
        for key in sorted(module.types):
            proto_type = module.types[key]
            canonical = self.modules.canonical(module.name, proto_type.name)

            if isinstance(proto_type, XidType):
                items.append(Alias(canonical, "u32"))
            elif isinstance(proto_type, EnumType):
                items.extend(self._enum(module, proto_type, claimed))
                continue
            elif isinstance(proto_type, TypeDef):
                items.append(Alias(canonical, self.modules.resolve(module.name, proto_type.old_name)))
            elif isinstance(proto_type, (StructType, UnionType)):
                is_union = isinstance(proto_type, UnionType)
                fields = self._fields(module.name, proto_type.fields)
                if is_union and not fields:
                    # Rust rejects empty unions
                    fields = [RustField("_data", "[u8; 0]")]
                items.append(Aggregate(canonical, fields, union=is_union))
            elif isinstance(proto_type, EventStruct):
                items.append(self._event_struct(module, proto_type))
                continue

            items.extend(self._iterator(module.name, proto_type.name))

        return items

    def _params(self, module: str, fields: list[Field]) -> list[str]:
        params = [CONNECTION_PARAM]
        for f in fields:
            if isinstance(f, ScalarField):
                if not f.computed:
                    params.append(f"{f.name}: {self.modules.resolve(module, f.type)}")
            elif isinstance(f, ListField):
                if f.length_kind == ListLength.DYNAMIC:
                    params.append(f"{f.name}_len: u32")
                params.append(f"{f.name}: *const {self.modules.resolve(module, f.type)}")
            elif isinstance(f, SwitchField):
                params.append(f"{f.name}: *const c_void")
            elif isinstance(f, FdField):
                params.append(f"{f.name}: i32")
        return params

    def _request(self, module: Module, request: Request) -> list[Item]:
        symbol = self.modules.symbol(module.name, request.name)
        items: list[Item] = [Consts([RustConst(constant_name(symbol), "u32", request.opcode)])]

        if module.is_extension:
            header = [
                RustField("major_opcode", "u8"),
                RustField("minor_opcode", "u8"),
                RustField("length", "u16"),
            ]
            fields = header + self._fields(module.name, request.fields)
        else:
            head, rest = self._split_head(module.name, request.fields)
            fields = [RustField("major_opcode", "u8"), *head, RustField("length", "u16"), *rest]
        items.append(Aggregate(f"{symbol}_request_t", fields))

        params = self._params(module.name, request.fields)
        functions: list[Function] = []

        if request.reply is not None:
            cookie = f"{symbol}_cookie_t"
            reply = f"{symbol}_reply_t"
            head, rest = self._split_head(module.name, request.reply.fields)
            items.append(
                Aggregate(
                    reply,
                    [
                        RustField("response_type", "u8"),
                        *head,
                        RustField("sequence", "u16"),
                        RustField("length", "u32"),
                        *rest,
                    ],
                )
            )
            items.append(Aggregate(cookie, [RustField("sequence", "c_uint")]))
            functions.append(Function(symbol, params, cookie))
            functions.append(Function(f"{symbol}_unchecked", params, cookie))
            functions.append(
                Function(
                    f"{symbol}_reply",
                    [CONNECTION_PARAM, f"cookie: {cookie}", "e: *mut *mut xcb_generic_error_t"],
                    f"*mut {reply}",
                )
            )
        else:
            functions.append(Function(f"{symbol}_checked", params, VOID_COOKIE))
            functions.append(Function(symbol, params, VOID_COOKIE))

        items.append(Extern(functions=functions))
        return items

    def _event_fields(self, module: str, event: Event) -> tuple[list[RustField], bool]:
        """Render an event body; returns the fields and whether the layout is packed."""
        if event.xge:
            header = [
                RustField("response_type", "u8"),
                RustField("extension", "u8"),
                RustField("sequence", "u16"),
                RustField("length", "u32"),
                RustField("event_type", "u16"),
            ]
            index = self.layout.full_sequence_index(module, event.fields)
            if index is None:
                return header + self._fields(module, event.fields), False

            fields = [
                *header,
                *self._fields(module, event.fields[:index]),
                RustField("full_sequence", "u32"),
                *self._fields(module, event.fields[index:]),
            ]
            packed = self.layout.calc_struct(module, event.fields).align >= 8
            return fields, packed

        if event.no_sequence_number:
            return [RustField("response_type", "u8"), *self._fields(module, event.fields)], False

        head, rest = self._split_head(module, event.fields)
        return [RustField("response_type", "u8"), *head, RustField("sequence", "u16"), *rest], False

    def _event(self, module: Module, event: Event | EventCopy) -> list[Item]:
        symbol = self.modules.symbol(module.name, event.name)
        items: list[Item] = [Consts([RustConst(constant_name(symbol), "u32", event.number)])]

        name = f"{symbol}_event_t"
        if isinstance(event, EventCopy):
            items.append(Alias(name, self.modules.event_name(module.name, event.ref, event)))
        else:
            fields, packed = self._event_fields(module.name, event)
            items.append(Aggregate(name, fields, packed=packed))
        return items

    def _error(self, module: Module, error: Error | ErrorCopy) -> list[Item]:
        symbol = self.modules.symbol(module.name, error.name)
        items: list[Item] = [Consts([RustConst(constant_name(symbol), "u32", error.number)])]

        name = f"{symbol}_error_t"
        if isinstance(error, ErrorCopy):
            items.append(Alias(name, self.modules.error_name(module.name, error.ref, error)))
            return items

        fields = [
            RustField("response_type", "u8"),
            RustField("error_code", "u8"),
            RustField("sequence", "u16"),
        ]
        # Header fields give way to the error's own leading fields
        count = len(error.fields)
        if count < 1:
            fields.append(RustField("bad_value", "u32"))
        if count < 2:
            fields.append(RustField("minor_opcode", "u16"))
        if count < 3:
            fields.append(RustField("major_opcode", "u8"))
        fields.extend(self._fields(module.name, error.fields))
        items.append(Aggregate(name, fields))
        return items

    def render_module(self, module: Module) -> ModuleView:
        items: list[Item] = []
        if module.is_extension:
            items.extend(self._extension_header(module))
        items.extend(self._types(module))
        for request in module.requests:
            items.extend(self._request(module, request))
        for event in module.events:
            items.extend(self._event(module, event))
        for error in module.errors:
            items.extend(self._error(module, error))

        return ModuleView(
            name=module.name,
            uses=self.modules.transitive_imports(module.name),
            items=items,
        )


def render(modules: ModuleSet) -> str:
    """Render a module set to Rust declarations, one ``pub mod`` per module."""
    renderer = RustRenderer(modules)
    views = [renderer.render_module(module) for module in modules]
    return template.render(modules=views)


PRELUDE_OPAQUE_TYPES = [
    "xcb_connection_t",
    "xcb_query_extension_reply_t",
    "xcb_setup_t",
    "xcb_special_event_t",
    "xcb_extension_t",
]

PRELUDE_FUNCTIONS = [
    Function("xcb_flush", [CONNECTION_PARAM], "c_int"),
    Function("xcb_get_maximum_request_length", [CONNECTION_PARAM], "u32"),
    Function("xcb_prefetch_maximum_request_length", [CONNECTION_PARAM]),
    Function("xcb_wait_for_event", [CONNECTION_PARAM], "*mut xcb_generic_event_t"),
    Function("xcb_poll_for_event", [CONNECTION_PARAM], "*mut xcb_generic_event_t"),
    Function("xcb_poll_for_queued_event", [CONNECTION_PARAM], "*mut xcb_generic_event_t"),
    Function(
        "xcb_poll_for_special_event",
        [CONNECTION_PARAM, "se: *mut xcb_special_event_t"],
        "*mut xcb_generic_event_t",
    ),
    Function(
        "xcb_wait_for_special_event",
        [CONNECTION_PARAM, "se: *mut xcb_special_event_t"],
        "*mut xcb_generic_event_t",
    ),
    Function(
        "xcb_register_for_special_xge",
        [CONNECTION_PARAM, "ext: *mut xcb_extension_t", "eid: u32", "stamp: *mut u32"],
        "*mut xcb_special_event_t",
    ),
    Function("xcb_unregister_for_special_event", [CONNECTION_PARAM, "se: *mut xcb_special_event_t"]),
    Function(
        "xcb_request_check", [CONNECTION_PARAM, f"cookie: {VOID_COOKIE}"], "*mut xcb_generic_error_t"
    ),
    Function("xcb_discard_reply", [CONNECTION_PARAM, "sequence: c_uint"]),
    Function("xcb_discard_reply64", [CONNECTION_PARAM, "sequence: u64"]),
    Function(
        "xcb_get_extension_data",
        [CONNECTION_PARAM, "ext: *mut xcb_extension_t"],
        "*const xcb_query_extension_reply_t",
    ),
    Function("xcb_prefetch_extension_data", [CONNECTION_PARAM, "ext: *mut xcb_extension_t"]),
    Function("xcb_get_setup", [CONNECTION_PARAM], "*const xcb_setup_t"),
    Function("xcb_get_file_descriptor", [CONNECTION_PARAM], "c_int"),
    Function("xcb_connection_has_error", [CONNECTION_PARAM], "c_int"),
    Function(
        "xcb_connect_to_fd", ["fd: c_int", "auth_info: *mut xcb_auth_info_t"], "*mut xcb_connection_t"
    ),
    Function("xcb_disconnect", [CONNECTION_PARAM]),
    Function(
        "xcb_parse_display",
        [
            "name: *const c_char",
            "host: *mut *mut c_char",
            "display: *mut c_int",
            "screen: *mut c_int",
        ],
        "c_int",
    ),
    Function(
        "xcb_connect", ["displayname: *const c_char", "screenp: *mut c_int"], "*mut xcb_connection_t"
    ),
    Function(
        "xcb_connect_to_display_with_auth_info",
        ["display: *const c_char", "auth: *mut xcb_auth_info_t", "screen: *mut c_int"],
        "*mut xcb_connection_t",
    ),
    Function("xcb_generate_id", [CONNECTION_PARAM], "u32"),
]


def runtime(generated: str = "xcb.rs") -> str:
    """Generate the crate root that declares what the generated modules refer to.

    Args:
        generated: File name of the generated declarations, relative to OUT_DIR
    """
    runtime_template = env.get_template("rust-prelude.rs.j2")
    return runtime_template.render(
        generated=generated,
        opaque=PRELUDE_OPAQUE_TYPES,
        functions=PRELUDE_FUNCTIONS,
    )
