"""CHIP-8 call stack operations.

Both operations leave the stack untouched when they fail and report the
failure through a boolean so the caller can record a fault.
"""

import jax.numpy as jnp
from chip8core.constants import STACK_SIZE
from chip8core.state import StackState


def push(stack: StackState, address: jnp.ndarray) -> tuple[StackState, jnp.ndarray]:
    """Push return address onto stack, returning (stack, overflow)."""
    overflow = stack.pointer >= STACK_SIZE
    slot = jnp.minimum(stack.pointer, STACK_SIZE - 1)
    new_data = jnp.where(
        overflow, stack.data, stack.data.at[slot].set(jnp.astype(address, jnp.uint16))
    )
    new_pointer = jnp.where(overflow, stack.pointer, stack.pointer + 1)
    return stack.replace(data=new_data, pointer=new_pointer), overflow


def pop(stack: StackState) -> tuple[StackState, jnp.ndarray, jnp.ndarray]:
    """Pop return address, returning (stack, address, underflow)."""
    underflow = stack.pointer <= 0
    new_pointer = jnp.where(underflow, stack.pointer, stack.pointer - 1)
    slot = jnp.maximum(new_pointer, 0)
    popped_address = stack.data[slot]
    new_data = jnp.where(underflow, stack.data, stack.data.at[slot].set(0))
    return stack.replace(data=new_data, pointer=new_pointer), popped_address, underflow


def depth(stack: StackState) -> int:
    """Number of pending return addresses."""
    return int(stack.pointer)
