"""CHIP-8 system instructions (0x0xxx)."""

import jax
import jax.lax
import jax.numpy as jnp
from chip8core.constants import FAULT_STACK_UNDERFLOW, FAULT_INVALID_INSTRUCTION
from chip8core.state import EmulatorState
from chip8core.decode import DecodedInstruction
from chip8core.faults import set_fault
from chip8core.stack import pop


def invalid_instruction(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """Record an invalid-instruction fault."""
    return set_fault(state, True, FAULT_INVALID_INSTRUCTION, instruction.raw)


def execute_clear_screen(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """00E0 - Clear display."""
    return state.replace(display=jnp.zeros_like(state.display))


def execute_return(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """00EE - Return from subroutine."""
    stack, address, underflow = pop(state.stack)
    state = state.replace(stack=stack, pc=jnp.where(underflow, state.pc, address))
    return set_fault(state, underflow, FAULT_STACK_UNDERFLOW, instruction.raw)


def execute_system_instruction(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """Dispatch system instructions. 0NNN machine-code calls are not supported."""
    index = jnp.where(instruction.raw == 0x00E0, 0, jnp.where(instruction.raw == 0x00EE, 1, 2))
    return jax.lax.switch(
        index,
        [execute_clear_screen, execute_return, invalid_instruction],
        state, instruction
    )
