"""CHIP-8 ALU operations (8xxx).

Every operation returns ``(result, vf)``. ``vf`` is ``None`` for the logical
operations, which leave VF alone; the others overwrite VF, so a program can
never rely on VF surviving an arithmetic or shift instruction.
"""

import jax
import jax.lax
import jax.numpy as jnp
from chip8core.constants import FLAG_REGISTER
from chip8core.state import EmulatorState
from chip8core.decode import DecodedInstruction
from chip8core.instructions.system import invalid_instruction


def alu_set(vx, vy):
    """8XY0 - Set: VX = VY."""
    return vy, None


def alu_or(vx, vy):
    """8XY1 - Binary OR: VX |= VY."""
    return vx | vy, None


def alu_and(vx, vy):
    """8XY2 - Binary AND: VX &= VY."""
    return vx & vy, None


def alu_xor(vx, vy):
    """8XY3 - Logical XOR: VX ^= VY."""
    return vx ^ vy, None


def alu_add(vx, vy):
    """8XY4 - Add: VX += VY, VF = carry."""
    result = vx + vy
    return result & 0xFF, result > 0xFF


def alu_sub_xy(vx, vy):
    """8XY5 - Subtract: VX -= VY, VF = 1 when no borrow."""
    return (vx - vy) & 0xFF, vx >= vy


def alu_shift_right(vx, vy):
    """8XY6 - Shift right: VF = old LSB, VX >>= 1."""
    return vx >> 1, vx & 1


def alu_sub_yx(vx, vy):
    """8XY7 - Subtract: VX = VY - VX, VF = 1 when VY > VX."""
    return (vy - vx) & 0xFF, vy > vx


def alu_shift_left(vx, vy):
    """8XYE - Shift left: VF = old MSB, VX <<= 1."""
    return (vx << 1) & 0xFF, (vx >> 7) & 1


ALU_OPERATIONS = {
    0x0: alu_set,
    0x1: alu_or,
    0x2: alu_and,
    0x3: alu_xor,
    0x4: alu_add,
    0x5: alu_sub_xy,
    0x6: alu_shift_right,
    0x7: alu_sub_yx,
    0xE: alu_shift_left,
}


def make_alu_instruction(operation):
    """Wrap an ALU operation into a state transition.

    Operands are widened to int32 so carries and borrows are visible. VF is
    written after VX, so with X = F the flag wins.
    """
    def alu_instruction(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
        vx = jnp.astype(state.V[instruction.x], jnp.int32)
        vy = jnp.astype(state.V[instruction.y], jnp.int32)
        result, vf = operation(vx, vy)

        new_V = state.V.at[instruction.x].set(jnp.astype(result, jnp.uint8))
        if vf is not None:
            new_V = new_V.at[FLAG_REGISTER].set(jnp.astype(vf, jnp.uint8))
        return state.replace(V=new_V)
    return alu_instruction


def execute_alu_operation(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """8XYN - ALU operations dispatcher. Undefined N values fault."""
    branches = [invalid_instruction] * 16
    for n, operation in ALU_OPERATIONS.items():
        branches[n] = make_alu_instruction(operation)

    return jax.lax.switch(instruction.n, branches, state, instruction)
