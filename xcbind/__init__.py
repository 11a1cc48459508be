"""xcbind - Rust FFI declaration generator for the XCB protocol descriptions."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("xcbind")
except PackageNotFoundError:
    __version__ = "(local)"
