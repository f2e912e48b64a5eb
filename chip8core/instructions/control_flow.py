"""CHIP-8 control flow instructions."""

import jax
import jax.lax
import jax.numpy as jnp
from chip8core.constants import NUM_KEYS, FAULT_STACK_OVERFLOW, FAULT_KEY
from chip8core.state import EmulatorState
from chip8core.decode import DecodedInstruction
from chip8core.faults import set_fault
from chip8core.stack import push
from chip8core.instructions.system import invalid_instruction


def execute_jump(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """1NNN - Jump to address NNN."""
    return state.replace(pc=jnp.astype(instruction.nnn, jnp.uint16))


def execute_call(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """2NNN - Call subroutine at NNN.

    The pushed address is the already-advanced pc, i.e. the instruction after
    the call.
    """
    stack, overflow = push(state.stack, state.pc)
    state = state.replace(
        stack=stack,
        pc=jnp.where(overflow, state.pc, jnp.astype(instruction.nnn, jnp.uint16)),
    )
    return set_fault(state, overflow, FAULT_STACK_OVERFLOW, instruction.raw)


def make_skip_instruction(condition_fn):
    """Factory for skip instructions."""
    def skip_instruction(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
        condition = condition_fn(state, instruction)
        return jax.lax.cond(
            condition,
            lambda s: s.replace(pc=jnp.astype(s.pc + 2, jnp.uint16)),
            lambda s: s,
            state
        )
    return skip_instruction


def require_zero_low_nibble(execute_fn):
    """Guard for 5XY0/9XY0, which are only defined with a zero last nibble."""
    def guarded(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
        return jax.lax.cond(
            instruction.n == 0,
            execute_fn,
            invalid_instruction,
            state, instruction
        )
    return guarded


execute_skip_if_equal_immediate = make_skip_instruction(
    lambda state, inst: state.V[inst.x] == inst.nn
)

execute_skip_if_not_equal_immediate = make_skip_instruction(
    lambda state, inst: state.V[inst.x] != inst.nn
)

execute_skip_if_equal_register = require_zero_low_nibble(make_skip_instruction(
    lambda state, inst: state.V[inst.x] == state.V[inst.y]
))

execute_skip_if_not_equal_register = require_zero_low_nibble(make_skip_instruction(
    lambda state, inst: state.V[inst.x] != state.V[inst.y]
))


def execute_jump_with_offset(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """BNNN - Jump to address NNN + V0.

    The target is not wrapped; a target past the end of memory faults on the
    next fetch.
    """
    jump_address = jnp.astype(instruction.nnn, jnp.uint16) + jnp.astype(state.V[0], jnp.uint16)
    return state.replace(pc=jump_address)


def execute_skip_if_key(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """EX9E/EXA1 - Skip if key VX pressed/not pressed."""
    key_index = state.V[instruction.x]
    out_of_range = key_index >= NUM_KEYS
    key_pressed = state.keypad[jnp.minimum(key_index, NUM_KEYS - 1)]
    is_not_instruction = (instruction.nn == 0xA1)
    condition = (key_pressed ^ is_not_instruction) & ~out_of_range

    state = jax.lax.cond(
        condition,
        lambda state: state.replace(pc=jnp.astype(state.pc + 2, jnp.uint16)),
        lambda state: state,
        state
    )
    return set_fault(state, out_of_range, FAULT_KEY, instruction.raw)


def execute_key_instruction(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """Dispatch EXNN; only 9E and A1 are defined."""
    return jax.lax.cond(
        (instruction.nn == 0x9E) | (instruction.nn == 0xA1),
        execute_skip_if_key,
        invalid_instruction,
        state, instruction
    )
