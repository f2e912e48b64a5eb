"""Main CHIP-8 emulator execution engine.

Everything here is a pure function of :class:`EmulatorState`. ``fetch``,
``execute``, ``step`` and ``tick_timers`` trace cleanly under ``jax.jit``;
``load_program``, ``load_rom`` and ``set_key`` validate their arguments
eagerly and raise on bad input.
"""

from functools import partial

import jax
import jax.lax
import jax.numpy as jnp
import numpy as np
from chip8core.state import EmulatorState
from chip8core.decode import decode
from chip8core.constants import PROGRAM_START, MAX_PROGRAM_SIZE, MEMORY_SIZE, NUM_KEYS, FAULT_NONE, FAULT_MEMORY
from chip8core.faults import set_fault, ProgramTooLargeError, InvalidKeyError
from chip8core.instructions.system import execute_system_instruction
from chip8core.instructions.control_flow import (
    execute_jump, execute_call, execute_skip_if_equal_immediate,
    execute_skip_if_not_equal_immediate, execute_skip_if_equal_register,
    execute_skip_if_not_equal_register, execute_jump_with_offset,
    execute_key_instruction
)
from chip8core.instructions.alu import execute_alu_operation
from chip8core.instructions.memory import execute_set, execute_add, execute_set_index, execute_random
from chip8core.instructions.display import execute_display
from chip8core.instructions.misc import execute_misc_instruction


def execute(state: EmulatorState, instruction: int) -> EmulatorState:
    """Execute single CHIP-8 instruction."""
    decoded_instruction = decode(instruction)

    return jax.lax.switch(
        decoded_instruction.opcode,
        [
            execute_system_instruction,
            execute_jump,
            execute_call,
            execute_skip_if_equal_immediate,
            execute_skip_if_not_equal_immediate,
            execute_skip_if_equal_register,
            execute_set,
            execute_add,
            execute_alu_operation,
            execute_skip_if_not_equal_register,
            execute_set_index,
            execute_jump_with_offset,
            execute_random,
            execute_display,
            execute_key_instruction,
            execute_misc_instruction,
        ],
        state, decoded_instruction
    )


def _pack_u16(high: jnp.uint8, low: jnp.uint8) -> jnp.uint16:
    """Pack two bytes into uint16."""
    return (high.astype(jnp.uint16) << 8) | low.astype(jnp.uint16)


def fetch(state: EmulatorState) -> tuple[EmulatorState, jnp.uint16]:
    """Fetch next instruction from memory and advance pc by 2.

    A pc whose second byte lies past the end of memory records a memory fault
    with no instruction word and leaves pc where it was. pc alignment is not
    checked: an odd pc reads the two bytes straddling instruction boundaries,
    like a hardware interpreter would.
    """
    pc = jnp.astype(state.pc, jnp.int32)
    out_of_bounds = pc + 1 >= MEMORY_SIZE
    instruction = _pack_u16(
        state.memory.at[pc].get(mode="clip"),
        state.memory.at[pc + 1].get(mode="clip"),
    )
    state = state.replace(pc=jnp.where(out_of_bounds, state.pc, jnp.astype(state.pc + 2, jnp.uint16)))
    return set_fault(state, out_of_bounds, FAULT_MEMORY, 0), instruction


def step(state: EmulatorState) -> EmulatorState:
    """Fetch, decode and execute one instruction.

    A faulted state is returned unchanged, so the machine halts on the first
    fault.
    """
    def run_instruction(state):
        state, instruction = fetch(state)
        return jax.lax.cond(
            state.fault == FAULT_NONE,
            execute,
            lambda s, _: s,
            state, instruction
        )

    return jax.lax.cond(state.fault == FAULT_NONE, run_instruction, lambda s: s, state)


@partial(jax.jit, static_argnums=1)
def run(state: EmulatorState, n: int) -> EmulatorState:
    """Run ``n`` consecutive steps without host round-trips."""
    state, _ = jax.lax.scan(lambda s, _: (step(s), None), state, length=n)
    return state


def tick_timers(state: EmulatorState) -> tuple[EmulatorState, jnp.ndarray]:
    """Advance both timers by one tick.

    Returns the new state and whether a beep is due, which is the case exactly
    when the sound timer was 1 before this tick.
    """
    beep = state.sound_timer == 1
    state = state.replace(
        delay_timer=jnp.where(state.delay_timer > 0, state.delay_timer - 1, state.delay_timer),
        sound_timer=jnp.where(state.sound_timer > 0, state.sound_timer - 1, state.sound_timer),
    )
    return state, beep


def set_key(state: EmulatorState, key: int, pressed: bool) -> EmulatorState:
    """Set the pressed state of one keypad key."""
    if not 0 <= key < NUM_KEYS:
        raise InvalidKeyError(f"Key index {key} outside 0..{NUM_KEYS - 1}")
    return state.replace(keypad=state.keypad.at[key].set(bool(pressed)))


def load_program(state: EmulatorState, data: bytes) -> EmulatorState:
    """Copy a program image into memory starting at 0x200."""
    rom_data = bytes(data)
    if len(rom_data) > MAX_PROGRAM_SIZE:
        raise ProgramTooLargeError(
            f"Program of {len(rom_data)} bytes exceeds the {MAX_PROGRAM_SIZE} bytes available at 0x{PROGRAM_START:03X}"
        )
    rom_array = jnp.asarray(np.frombuffer(rom_data, dtype=np.uint8))
    new_memory = state.memory.at[PROGRAM_START:PROGRAM_START + len(rom_data)].set(rom_array)
    return state.replace(memory=new_memory)


def load_rom(state: EmulatorState, filename: str) -> EmulatorState:
    """Load ROM data into CHIP-8 memory starting at 0x200."""
    with open(filename, 'rb') as f:
        rom_data = f.read()
    return load_program(state, rom_data)
