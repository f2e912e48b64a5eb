"""CHIP-8 miscellaneous instructions (Fxxx)."""

import jax
import jax.lax
import jax.numpy as jnp
from chip8core.state import EmulatorState
from chip8core.decode import DecodedInstruction
from chip8core.constants import (
    FONT_START, FONT_GLYPH_SIZE, MEMORY_SIZE, NUM_KEYS, NUM_REGISTERS, FAULT_MEMORY,
)
from chip8core.faults import set_fault
from chip8core.instructions.system import invalid_instruction


def execute_get_delay_timer(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX07 - Set VX to delay timer value."""
    return state.replace(V=state.V.at[instruction.x].set(state.delay_timer))


def execute_set_delay_timer(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX15 - Set delay timer to VX."""
    return state.replace(delay_timer=state.V[instruction.x])


def execute_set_sound_timer(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX18 - Set sound timer to VX."""
    return state.replace(sound_timer=state.V[instruction.x])


def execute_add_to_index(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX1E - Add VX to I register, wrapping at 16 bits. VF is not touched."""
    return state.replace(I=state.I + jnp.astype(state.V[instruction.x], jnp.uint16))


def execute_wait_for_key(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX0A - Wait for key press.

    Never blocks: with no key down pc is rewound so the same instruction runs
    again on the next step. With several keys down the highest index wins.
    """
    def key_pressed_action(state):
        pressed_key = NUM_KEYS - 1 - jnp.argmax(state.keypad[::-1])
        return state.replace(V=state.V.at[instruction.x].set(jnp.astype(pressed_key, jnp.uint8)))

    def wait_action(state):
        return state.replace(pc=jnp.astype(state.pc - 2, jnp.uint16))

    return jax.lax.cond(jnp.any(state.keypad), key_pressed_action, wait_action, state)


def execute_font_character(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX29 - Set I to location of sprite for digit VX."""
    font_address = FONT_START + jnp.astype(state.V[instruction.x], jnp.uint16) * FONT_GLYPH_SIZE
    return state.replace(I=jnp.astype(font_address, jnp.uint16))


def execute_bcd_conversion(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX33 - Store BCD representation of VX at I, I+1, I+2."""
    value = state.V[instruction.x]
    index = jnp.astype(state.I, jnp.int32)
    out_of_bounds = index + 2 >= MEMORY_SIZE

    digits = jnp.array([
        value // 100,
        (value // 10) % 10,
        value % 10
    ], dtype=jnp.uint8)

    new_memory = state.memory.at[index + jnp.arange(3)].set(digits, mode="drop")
    state = state.replace(memory=jnp.where(out_of_bounds, state.memory, new_memory))
    return set_fault(state, out_of_bounds, FAULT_MEMORY, instruction.raw)


def execute_store_registers(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX55 - Store V0 through VX in memory starting at I. I is left unchanged."""
    index = jnp.astype(state.I, jnp.int32)
    out_of_bounds = index + instruction.x >= MEMORY_SIZE

    register_mask = jnp.arange(NUM_REGISTERS) <= instruction.x
    base_indices = index + jnp.arange(NUM_REGISTERS)
    current_memory_values = state.memory.at[base_indices].get(mode="clip")
    new_memory_values = jnp.where(register_mask, state.V, current_memory_values)
    new_memory = state.memory.at[base_indices].set(new_memory_values, mode="drop")

    state = state.replace(memory=jnp.where(out_of_bounds, state.memory, new_memory))
    return set_fault(state, out_of_bounds, FAULT_MEMORY, instruction.raw)


def execute_load_registers(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """FX65 - Load V0 through VX from memory starting at I. I is left unchanged."""
    index = jnp.astype(state.I, jnp.int32)
    out_of_bounds = index + instruction.x >= MEMORY_SIZE

    register_mask = jnp.arange(NUM_REGISTERS) <= instruction.x
    base_indices = index + jnp.arange(NUM_REGISTERS)
    memory_values = state.memory.at[base_indices].get(mode="clip")
    new_V = jnp.where(register_mask, memory_values, state.V)

    state = state.replace(V=jnp.where(out_of_bounds, state.V, new_V))
    return set_fault(state, out_of_bounds, FAULT_MEMORY, instruction.raw)


MISC_INSTRUCTIONS = {
    0x07: execute_get_delay_timer,
    0x0A: execute_wait_for_key,
    0x15: execute_set_delay_timer,
    0x18: execute_set_sound_timer,
    0x1E: execute_add_to_index,
    0x29: execute_font_character,
    0x33: execute_bcd_conversion,
    0x55: execute_store_registers,
    0x65: execute_load_registers,
}

# Maps the low byte of FXNN to a branch index; unknown bytes select the last
# branch, which faults.
_MISC_BRANCH_TABLE = jnp.full(256, len(MISC_INSTRUCTIONS), dtype=jnp.int32).at[
    jnp.array(list(MISC_INSTRUCTIONS.keys()))
].set(jnp.arange(len(MISC_INSTRUCTIONS), dtype=jnp.int32))


def execute_misc_instruction(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """Dispatch misc instructions through a low-byte lookup table."""
    return jax.lax.switch(
        _MISC_BRANCH_TABLE[instruction.nn],
        [*MISC_INSTRUCTIONS.values(), invalid_instruction],
        state, instruction
    )
