"""Tests for system instructions (0xxx)."""

import jax.numpy as jnp
import pytest
from chip8core import execute, FAULT_INVALID_INSTRUCTION, FAULT_STACK_UNDERFLOW


def test_execute_clear_screen(fresh_state):
    """Test 00E0 - Clear display."""
    state = fresh_state.replace(display=fresh_state.display.at[0, 0].set(True).at[63, 31].set(True))

    state = execute(state, 0x00E0)

    assert jnp.sum(state.display) == 0
    assert state.display.shape == (64, 32)


def test_execute_call_and_return(fresh_state):
    """Test 2NNN (call) and 00EE (return) together."""
    state = fresh_state
    initial_pc = state.pc

    # Call subroutine
    state = execute(state, 0x2300)  # Call 0x300
    assert state.pc == 0x300
    assert state.stack.data[state.stack.pointer - 1] == initial_pc

    # Return from subroutine
    state = execute(state, 0x00EE)  # Return
    assert state.pc == initial_pc
    assert state.stack.pointer == 0


def test_nested_returns_unwind_in_order(fresh_state):
    """Returns pop the most recent call first."""
    state = fresh_state
    state = execute(state, 0x2300)
    state = execute(state, 0x2400)

    state = execute(state, 0x00EE)
    assert state.pc == 0x300
    state = execute(state, 0x00EE)
    assert state.pc == 0x200


def test_return_with_empty_stack(fresh_state):
    """00EE on an empty stack faults."""
    state = execute(fresh_state, 0x00EE)

    assert state.fault == FAULT_STACK_UNDERFLOW
    assert state.fault_word == 0x00EE
    assert state.pc == fresh_state.pc
    assert state.stack.pointer == 0


@pytest.mark.parametrize("instruction", [0x0000, 0x0123, 0x00E1, 0x00FF, 0x0FFF])
def test_machine_code_routines_are_invalid(fresh_state, instruction):
    """0NNN other than 00E0/00EE is not supported."""
    state = execute(fresh_state, instruction)

    assert state.fault == FAULT_INVALID_INSTRUCTION
    assert state.fault_word == instruction
