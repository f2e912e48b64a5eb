"""CHIP-8 emulator core."""

from chip8core.state import EmulatorState, StackState, create_state
from chip8core.emulator import execute, fetch, step, run, tick_timers, set_key, load_program, load_rom
from chip8core.decode import DecodedInstruction, decode
from chip8core.faults import (
    Chip8Error, ProgramTooLargeError, StackOverflowError, StackUnderflowError,
    MemoryAccessError, InvalidKeyError, InvalidInstructionError, raise_for_fault,
)
from chip8core.machine import Machine
from chip8core.constants import *

__all__ = [
    "EmulatorState",
    "StackState",
    "create_state",
    "fetch",
    "execute",
    "step",
    "run",
    "tick_timers",
    "set_key",
    "load_program",
    "load_rom",
    "DecodedInstruction",
    "decode",
    "Machine",
    "Chip8Error",
    "ProgramTooLargeError",
    "StackOverflowError",
    "StackUnderflowError",
    "MemoryAccessError",
    "InvalidKeyError",
    "InvalidInstructionError",
    "raise_for_fault",
    "PROGRAM_START",
    "FONT_START",
    "MEMORY_SIZE",
    "SCREEN_WIDTH",
    "SCREEN_HEIGHT",
    "STACK_SIZE",
]
