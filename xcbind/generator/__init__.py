"""XCB protocol description compiler."""

from .modules import ModuleSet as ModuleSet
from .modules import ResolutionError as ResolutionError
from .modules import load_modules as load_modules
from .names import *
from .parser import GenerationError as GenerationError
from .parser import ParseError as ParseError
from .parser import load_module as load_module
from .parser import parse_module as parse_module
from .sizes import LayoutCalculator as LayoutCalculator
from .sizes import SizeAlign as SizeAlign
from .sizes import size_align as size_align
from .types import *
