"""Fault recording and the host-facing error hierarchy.

Instruction handlers run under ``jax.jit`` where raising is impossible, so a
fatal condition is recorded in ``EmulatorState.fault``. Hosts turn a faulted
state into one of the exceptions below with :func:`raise_for_fault`.
"""

from typing import Optional

import jax.numpy as jnp

from chip8core.constants import (
    FAULT_NONE, FAULT_STACK_OVERFLOW, FAULT_STACK_UNDERFLOW, FAULT_MEMORY,
    FAULT_KEY, FAULT_INVALID_INSTRUCTION,
)
from chip8core.state import EmulatorState


def set_fault(state: EmulatorState, condition, code: int, instruction_word) -> EmulatorState:
    """Record ``code`` when ``condition`` holds; an earlier fault is never overwritten."""
    record = condition & (state.fault == FAULT_NONE)
    return state.replace(
        fault=jnp.where(record, jnp.astype(code, jnp.uint8), state.fault),
        fault_word=jnp.where(record, jnp.astype(instruction_word, jnp.uint16), state.fault_word),
    )


class Chip8Error(Exception):
    """Base class for every fatal emulator condition."""

    def __init__(self, message: str, pc: Optional[int] = None, instruction: Optional[int] = None):
        super().__init__(message)
        self.pc = pc
        self.instruction = instruction


class ProgramTooLargeError(Chip8Error):
    """Program image does not fit between the start address and the end of memory."""


class StackOverflowError(Chip8Error):
    """Subroutine call with every stack slot already in use."""


class StackUnderflowError(Chip8Error):
    """Return with no pending return address."""


class MemoryAccessError(Chip8Error, IndexError):
    """Fetch or index-relative access outside the address space."""


class InvalidKeyError(Chip8Error, IndexError):
    """Key index outside the 16-key panel."""


class InvalidInstructionError(Chip8Error):
    """Instruction word matching no defined opcode."""


_FAULT_ERRORS = {
    FAULT_STACK_OVERFLOW: (StackOverflowError, "call stack overflow"),
    FAULT_STACK_UNDERFLOW: (StackUnderflowError, "return with empty call stack"),
    FAULT_MEMORY: (MemoryAccessError, "memory access out of bounds"),
    FAULT_KEY: (InvalidKeyError, "key index out of range"),
    FAULT_INVALID_INSTRUCTION: (InvalidInstructionError, "invalid instruction"),
}


def error_for_fault(state: EmulatorState, pc: Optional[int] = None) -> Optional[Chip8Error]:
    """Build the exception matching the fault recorded in ``state``, or None."""
    code = int(state.fault)
    if code == FAULT_NONE:
        return None
    error_cls, description = _FAULT_ERRORS[code]
    instruction = int(state.fault_word)
    # A memory fault with no instruction word comes from fetch itself.
    if code == FAULT_MEMORY and instruction == 0:
        instruction = None
    where = f" at 0x{pc:03X}" if pc is not None else ""
    fetched = f"instruction 0x{instruction:04X}, " if instruction is not None else ""
    message = f"{description}{where} ({fetched}I=0x{int(state.I):03X})"
    return error_cls(message, pc=pc, instruction=instruction)


def raise_for_fault(state: EmulatorState, pc: Optional[int] = None) -> None:
    """Raise the exception matching the fault recorded in ``state``, if any."""
    error = error_for_fault(state, pc)
    if error is not None:
        raise error
