"""CHIP-8 display operations."""

import jax.numpy as jnp
from chip8core.state import EmulatorState
from chip8core.decode import DecodedInstruction
from chip8core.constants import (
    SCREEN_WIDTH, SCREEN_HEIGHT, SPRITE_WIDTH, MAX_SPRITE_HEIGHT, MEMORY_SIZE,
    FLAG_REGISTER, FAULT_MEMORY,
)
from chip8core.faults import set_fault

# Pre-computed (row, column) grid covering the largest sprite. Wrapped
# coordinates of this grid never collide, so a scatter-set is exact.
rows, cols = jnp.meshgrid(jnp.arange(MAX_SPRITE_HEIGHT), jnp.arange(SPRITE_WIDTH), indexing='ij')


def execute_display(state: EmulatorState, instruction: DecodedInstruction) -> EmulatorState:
    """DXYN - XOR-draw an N-row sprite from memory[I] at (VX, VY).

    Every sprite pixel wraps around both screen edges. VF is overwritten with
    1 if a lit pixel was turned off, 0 otherwise.
    """
    sprite_x = jnp.astype(state.V[instruction.x], jnp.int32)
    sprite_y = jnp.astype(state.V[instruction.y], jnp.int32)
    height = instruction.n
    index = jnp.astype(state.I, jnp.int32)

    out_of_bounds = (height > 0) & (index + height > MEMORY_SIZE)

    in_sprite = rows < height
    addresses = jnp.minimum(index + rows, MEMORY_SIZE - 1)
    sprite_bytes = jnp.astype(state.memory[addresses], jnp.int32)
    bits = ((sprite_bytes >> (SPRITE_WIDTH - 1 - cols)) & 1).astype(jnp.bool_) & in_sprite

    px = (sprite_x + cols) % SCREEN_WIDTH
    py = (sprite_y + rows) % SCREEN_HEIGHT
    sprite = jnp.zeros_like(state.display).at[px, py].set(bits)

    collision = jnp.any(state.display & sprite)
    new_display = state.display ^ sprite

    state = state.replace(
        display=jnp.where(out_of_bounds, state.display, new_display),
        V=jnp.where(out_of_bounds, state.V, state.V.at[FLAG_REGISTER].set(jnp.astype(collision, jnp.uint8))),
    )
    return set_fault(state, out_of_bounds, FAULT_MEMORY, instruction.raw)
