"""Protocol layer: frame encoding, command builders, and response classification."""

from .framing import FrameEncoder, Operation, parse_header
from .commands import Opcode, build_command
from .parser import ResponseKind, classify, is_ready
