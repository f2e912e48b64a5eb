"""Host-facing CHIP-8 engine.

:class:`Machine` wraps one :class:`EmulatorState` behind the imperative API a
frontend loop expects: load a program, set keys, execute one instruction,
tick the timers. Faults recorded by the functional core are raised here as
:class:`~chip8core.faults.Chip8Error` subclasses, and a faulted state is
never committed.

A Machine is not thread-safe; serialize all calls on one instance.
"""

from typing import Dict, Optional

import jax
import numpy as np

from chip8core.constants import NUM_REGISTERS
from chip8core.emulator import step, tick_timers, set_key, load_program
from chip8core.faults import Chip8Error, raise_for_fault
from chip8core.logging import MachineLogger
from chip8core.stack import depth
from chip8core.state import EmulatorState, create_state

# Compiled once per process and shared by every Machine.
_step = jax.jit(step)
_tick_timers = jax.jit(tick_timers)


class Machine:
    """Single CHIP-8 machine driven by a host loop."""

    def __init__(self, seed: int = 0, logger: Optional[MachineLogger] = None):
        self.seed = seed
        self.logger = logger or MachineLogger(log_level="WARNING")
        self._program: bytes = b""
        self._state: EmulatorState = create_state(jax.random.PRNGKey(seed))

    @property
    def state(self) -> EmulatorState:
        return self._state

    @property
    def pc(self) -> int:
        return int(self._state.pc)

    @property
    def index(self) -> int:
        return int(self._state.I)

    @property
    def registers(self) -> np.ndarray:
        return np.asarray(self._state.V)

    @property
    def delay_timer(self) -> int:
        return int(self._state.delay_timer)

    @property
    def sound_timer(self) -> int:
        return int(self._state.sound_timer)

    @property
    def stack_depth(self) -> int:
        return depth(self._state.stack)

    @property
    def framebuffer(self) -> np.ndarray:
        """Boolean (64, 32) array indexed [x, y]."""
        return np.asarray(self._state.display)

    def load_program(self, data: bytes, source: Optional[str] = None) -> None:
        """Copy a program image to 0x200. Raises ProgramTooLargeError if it does not fit."""
        data = bytes(data)
        self._state = load_program(self._state, data)
        self._program = data
        self.logger.log_program_loaded(len(data), source)

    def load_rom(self, filename: str) -> None:
        with open(filename, 'rb') as f:
            self.load_program(f.read(), source=filename)

    def set_key(self, key: int, pressed: bool) -> None:
        self._state = set_key(self._state, key, pressed)

    def key_down(self, key: int) -> None:
        self.set_key(key, True)

    def key_up(self, key: int) -> None:
        self.set_key(key, False)

    def tick(self) -> np.ndarray:
        """Execute exactly one instruction and return the framebuffer.

        Raises the matching Chip8Error if the instruction faults; the machine
        then keeps its pre-instruction state.
        """
        pc = self.pc
        new_state = _step(self._state)
        try:
            raise_for_fault(new_state, pc)
        except Chip8Error as error:
            self.logger.log_fault(error)
            raise
        self._state = new_state
        return self.framebuffer

    def tick_timers(self) -> bool:
        """Advance both timers by one tick; True means a beep is due now."""
        self._state, beep = _tick_timers(self._state)
        return bool(beep)

    def reset(self) -> None:
        """Return to the power-on state and reload the last program image."""
        self._state = create_state(jax.random.PRNGKey(self.seed))
        if self._program:
            self._state = load_program(self._state, self._program)
        self.logger.log_reset()

    def register_map(self) -> Dict[str, int]:
        registers = {f"V{i:X}": int(value) for i, value in enumerate(self.registers[:NUM_REGISTERS])}
        registers["I"] = self.index
        registers["PC"] = self.pc
        return registers

    def dump_registers(self) -> None:
        self.logger.log_registers(self.register_map())
