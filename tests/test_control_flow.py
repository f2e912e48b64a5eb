"""Tests for control flow instructions."""

import pytest
from chip8core import execute, FAULT_INVALID_INSTRUCTION, FAULT_KEY, FAULT_STACK_OVERFLOW, STACK_SIZE
from conftest import set_registers


class TestJump:
    """Test jump instructions."""

    def test_execute_jump(self, fresh_state):
        """Test 1NNN - Jump to address."""
        state = execute(fresh_state, 0x1001)
        assert state.pc == 1

    def test_jump_with_offset(self, fresh_state):
        """BNNN - Jump to NNN + V0; other registers are ignored."""
        state = set_registers(fresh_state, V0=0x10, V1=0x99)
        state = execute(state, 0xB300)
        assert state.pc == 0x310

    def test_jump_with_offset_past_twelve_bits(self, fresh_state):
        """BNNN - Target is not wrapped to 12 bits."""
        state = set_registers(fresh_state, V0=0xFF)
        state = execute(state, 0xBFFF)
        assert state.pc == 0xFFF + 0xFF


class TestCall:
    """Test subroutine calls."""

    def test_call_pushes_pc(self, fresh_state):
        """2NNN - Current pc is pushed, then pc = NNN."""
        state = execute(fresh_state, 0x2ABC)
        assert state.pc == 0xABC
        assert state.stack.pointer == 1
        assert state.stack.data[0] == 0x200

    def test_call_overflow(self, fresh_state):
        """2NNN - The 17th nested call faults and leaves pc alone."""
        state = fresh_state
        for i in range(STACK_SIZE):
            state = execute(state, 0x2300 + 2 * i)
        assert state.stack.pointer == STACK_SIZE
        pc_before = state.pc

        state = execute(state, 0x2400)

        assert state.fault == FAULT_STACK_OVERFLOW
        assert state.fault_word == 0x2400
        assert state.pc == pc_before
        assert state.stack.pointer == STACK_SIZE


class TestSkipInstructions:
    """Test all skip instruction variants."""

    def test_skip_if_equal_immediate_true(self, fresh_state):
        """3XNN - Should skip when VX == NN."""
        state = set_registers(fresh_state, V5=0x42)
        initial_pc = state.pc

        state = execute(state, 0x3542)  # Skip if V5 == 0x42
        assert state.pc == initial_pc + 2

    def test_skip_if_equal_immediate_false(self, fresh_state):
        """3XNN - Should not skip when VX != NN."""
        state = set_registers(fresh_state, V5=0x41)
        initial_pc = state.pc

        state = execute(state, 0x3542)
        assert state.pc == initial_pc

    def test_skip_if_not_equal_immediate_true(self, fresh_state):
        """4XNN - Should skip when VX != NN."""
        state = set_registers(fresh_state, V3=0x10)
        initial_pc = state.pc

        state = execute(state, 0x4320)  # Skip if V3 != 0x20
        assert state.pc == initial_pc + 2

    def test_skip_if_not_equal_immediate_false(self, fresh_state):
        """4XNN - Should not skip when VX == NN."""
        state = set_registers(fresh_state, V3=0x20)
        initial_pc = state.pc

        state = execute(state, 0x4320)
        assert state.pc == initial_pc

    def test_skip_if_equal_register_true(self, fresh_state):
        """5XY0 - Should skip when VX == VY."""
        state = set_registers(fresh_state, V1=0x55, V2=0x55)
        initial_pc = state.pc

        state = execute(state, 0x5120)  # Skip if V1 == V2
        assert state.pc == initial_pc + 2

    def test_skip_if_equal_register_false(self, fresh_state):
        """5XY0 - Should not skip when VX != VY."""
        state = set_registers(fresh_state, V1=0x55, V2=0x44)
        initial_pc = state.pc

        state = execute(state, 0x5120)
        assert state.pc == initial_pc

    def test_skip_if_not_equal_register_true(self, fresh_state):
        """9XY0 - Should skip when VX != VY."""
        state = set_registers(fresh_state, V7=0xAA, V8=0xBB)
        initial_pc = state.pc

        state = execute(state, 0x9780)  # Skip if V7 != V8
        assert state.pc == initial_pc + 2

    def test_skip_if_not_equal_register_false(self, fresh_state):
        """9XY0 - Should not skip when VX == VY."""
        state = set_registers(fresh_state, V7=0xAA, V8=0xAA)
        initial_pc = state.pc

        state = execute(state, 0x9780)
        assert state.pc == initial_pc

    @pytest.mark.parametrize("instruction", [0x5121, 0x512F, 0x9781, 0x978E])
    def test_register_skips_need_zero_low_nibble(self, fresh_state, instruction):
        """5XYN/9XYN with N != 0 are not instructions."""
        state = execute(fresh_state, instruction)
        assert state.fault == FAULT_INVALID_INSTRUCTION
        assert state.fault_word == instruction
        assert state.pc == fresh_state.pc


class TestKeySkips:
    """Test EX9E / EXA1."""

    def test_skip_if_key_pressed(self, fresh_state):
        state = set_registers(fresh_state, V2=0xA)
        state = state.replace(keypad=state.keypad.at[0xA].set(True))

        assert execute(state, 0xE29E).pc == state.pc + 2
        assert execute(state, 0xE2A1).pc == state.pc

    def test_skip_if_key_not_pressed(self, fresh_state):
        state = set_registers(fresh_state, V2=0xA)

        assert execute(state, 0xE29E).pc == state.pc
        assert execute(state, 0xE2A1).pc == state.pc + 2

    def test_key_index_out_of_range(self, fresh_state):
        """EX9E with VX > 15 faults instead of wrapping the key index."""
        state = set_registers(fresh_state, V2=0x10)
        state = state.replace(keypad=state.keypad.at[0x0].set(True))

        state = execute(state, 0xE29E)

        assert state.fault == FAULT_KEY
        assert state.pc == fresh_state.pc

    @pytest.mark.parametrize("instruction", [0xE000, 0xE19F, 0xE2A2, 0xEFFF])
    def test_undefined_key_instructions(self, fresh_state, instruction):
        state = execute(fresh_state, instruction)
        assert state.fault == FAULT_INVALID_INSTRUCTION
        assert state.fault_word == instruction
