"""Module set: cross-module lookup of types, events and errors."""

from collections.abc import Callable, Iterable, Iterator
from typing import TypeVar

from .names import convert_extension_name, convert_name
from .parser import GenerationError, load_module
from .types import BUILTIN_TYPES, Error, ErrorCopy, Event, EventCopy, Module, ProtoType

CORE_MODULE = "xproto"


class ResolutionError(GenerationError):
    """Raised when a type, event or error reference cannot be resolved."""


T = TypeVar("T")


class ModuleSet:
    """All modules of one generation run plus the built-in primitives.

    Lookups model C ``#include`` visibility: a module sees its own
    declarations first, then those of its imports, depth-first in import order.
    """

    def __init__(self, modules: Iterable[Module]):
        self.modules: dict[str, Module] = {m.name: m for m in modules}
        self.builtins = BUILTIN_TYPES

    def __getitem__(self, name: str) -> Module:
        try:
            return self.modules[name]
        except KeyError:
            raise ResolutionError(f"Unknown module: {name}") from None

    def __iter__(self) -> Iterator[Module]:
        """Iterate modules in lexicographic name order."""
        return iter(self.modules[name] for name in sorted(self.modules))

    def __len__(self) -> int:
        return len(self.modules)

    def prefix(self, module: str) -> str:
        """Return the symbol prefix of a module, e.g. ``xcb_randr``."""
        m = self[module]
        if m.extension_name is None:
            return "xcb"
        return f"xcb_{convert_extension_name(m.extension_name)}"

    def symbol(self, module: str, name: str) -> str:
        """Return the prefixed symbol for a declaration, e.g. ``xcb_create_window``."""
        return f"{self.prefix(module)}_{convert_name(name)}"

    def canonical(self, module: str, name: str, suffix: str = "t") -> str:
        return f"{self.symbol(module, name)}_{suffix}"

    def transitive_imports(self, module: str) -> list[str]:
        """Return every module reachable through imports, in first-seen order."""
        seen: list[str] = []

        def visit(name: str) -> None:
            for imported in self[name].imports:
                if imported not in seen and imported != module:
                    seen.append(imported)
                    visit(imported)

        visit(module)
        return seen

    def _search(
        self, module: str, ref: str, lookup: Callable[[Module, str], T | None]
    ) -> tuple[str, T] | None:
        if ":" in ref:
            module, ref = ref.split(":", 1)
            found = lookup(self[module], ref)
            return (module, found) if found is not None else None

        found = lookup(self[module], ref)
        if found is not None:
            return module, found

        for imported in self[module].imports:
            result = self._search(imported, ref, lookup)
            if result is not None:
                return result

        return None

    def find_type(self, module: str, ref: str) -> tuple[str, ProtoType] | None:
        """Find the declaring module and declaration of a user type."""
        return self._search(module, ref, lambda m, name: m.types.get(name))

    def find_event(
        self, module: str, ref: str, skip: EventCopy | None = None
    ) -> tuple[str, Event | EventCopy]:
        """Find an event; ``skip`` keeps a copy from resolving to itself."""
        found = self._search(
            module,
            ref,
            lambda m, name: next((e for e in m.events if e.name == name and e is not skip), None),
        )
        if found is None:
            raise ResolutionError(f"{module}: unknown event '{ref}'")
        return found

    def find_error(
        self, module: str, ref: str, skip: ErrorCopy | None = None
    ) -> tuple[str, Error | ErrorCopy]:
        found = self._search(
            module,
            ref,
            lambda m, name: next((e for e in m.errors if e.name == name and e is not skip), None),
        )
        if found is None:
            raise ResolutionError(f"{module}: unknown error '{ref}'")
        return found

    def resolve_event_copy(self, module: str, copy: EventCopy) -> tuple[str, Event]:
        """Follow a chain of event copies to the event that declares the layout."""
        seen: list[EventCopy] = []
        event: Event | EventCopy = copy
        while isinstance(event, EventCopy):
            if any(event is s for s in seen):
                raise ResolutionError(f"{module}: event copy '{copy.name}' refers back to itself")
            seen.append(event)
            module, event = self.find_event(module, event.ref, skip=event)
        return module, event

    def resolve(self, module: str, ref: str) -> str:
        """Return the canonical Rust name for a type reference."""
        found = self.find_type(module, ref)
        if found is not None:
            declaring, proto_type = found
            return self.canonical(declaring, proto_type.name)

        if ref in self.builtins:
            return self.builtins[ref]

        raise ResolutionError(f"{module}: unknown type '{ref}'")

    def event_name(self, module: str, ref: str, skip: EventCopy | None = None) -> str:
        declaring, event = self.find_event(module, ref, skip)
        return self.canonical(declaring, event.name, "event_t")

    def error_name(self, module: str, ref: str, skip: ErrorCopy | None = None) -> str:
        declaring, error = self.find_error(module, ref, skip)
        return self.canonical(declaring, error.name, "error_t")

    def extension_module(self, extension_name: str) -> str:
        """Find the module declaring an extension by its ``extension-name``."""
        for m in self:
            if m.extension_name == extension_name:
                return m.name
        raise ResolutionError(f"Unknown extension: {extension_name}")


def load_modules(names: Iterable[str], xml_dir: str) -> ModuleSet:
    """Load the named modules, the core module and every module they import."""
    loaded: dict[str, Module] = {}
    pending = [CORE_MODULE, *names]

    while pending:
        name = pending.pop(0)
        if name in loaded:
            continue
        module = load_module(name, xml_dir)
        loaded[name] = module
        pending.extend(module.imports)

    return ModuleSet(loaded.values())
