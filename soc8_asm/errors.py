"""
Assembler error types.

Every fatal assembly condition raises AssemblerError carrying an
AsmErrorKind, so callers (CLI, tests) can tell failures apart without
parsing message text.
"""

import enum

__all__ = ['AsmErrorKind', 'AssemblerError']


class AsmErrorKind(enum.Enum):
    OPERAND_COUNT = 'operand count'
    INVALID_REGISTER = 'invalid register'
    INVALID_IMMEDIATE = 'invalid immediate'
    UNKNOWN_MNEMONIC = 'unknown instruction'
    TOO_MANY_LABELS = 'too many labels'
    UNRESOLVED_LABEL = 'unresolved label'
    DUPLICATE_LABEL = 'duplicate label'
    INVALID_LABEL = 'invalid label'
    ADDRESS_RANGE = 'address out of range'
    INTERNAL = 'internal error'


class AssemblerError(Exception):
    """Raised on assembly errors."""
    def __init__(self, message: str, line_num: int = 0, line_text: str = "",
                 kind: AsmErrorKind = AsmErrorKind.INTERNAL):
        self.line_num = line_num
        self.line_text = line_text
        self.kind = kind
        text = f"Line {line_num}: {message}" if line_num else message
        if line_text:
            text += f" (line: {line_text.strip()!r})"
        super().__init__(text)
