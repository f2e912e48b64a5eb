"""
CHIP-8 ROM player: pygame window or headless run
"""

import argparse
import sys
import time

import numpy as np

from chip8core import Machine, Chip8Error
from chip8core.logging import MachineLogger, progress_bar
from chip8core.rendering import chip8_display_to_rgb, create_color_scheme, COLOR_SCHEMES

TIMER_HZ = 60


def make_beep(pygame, frequency=440, duration=0.1, sample_rate=22050):
    """Square-wave beep as a pygame Sound, or None if the mixer is unavailable."""
    try:
        pygame.mixer.init(frequency=sample_rate, size=-16, channels=1)
    except pygame.error:
        return None
    samples = int(sample_rate * duration)
    wave = np.where((np.arange(samples) * frequency * 2 // sample_rate) % 2 == 0, 8000, -8000)
    return pygame.sndarray.make_sound(wave.astype(np.int16))


def run_window(machine, logger, scale=10, ipf=10, color_scheme="classic"):
    """Main emulator loop: ipf instructions and one timer tick per 60 Hz frame."""
    import pygame

    # Hex keypad on the left of a QWERTY keyboard
    key_map = {
        pygame.K_1: 0x1, pygame.K_2: 0x2, pygame.K_3: 0x3, pygame.K_4: 0xC,
        pygame.K_q: 0x4, pygame.K_w: 0x5, pygame.K_e: 0x6, pygame.K_r: 0xD,
        pygame.K_a: 0x7, pygame.K_s: 0x8, pygame.K_d: 0x9, pygame.K_f: 0xE,
        pygame.K_z: 0xA, pygame.K_x: 0x0, pygame.K_c: 0xB, pygame.K_v: 0xF,
    }

    pygame.init()
    screen = pygame.display.set_mode((64 * scale, 32 * scale))
    pygame.display.set_caption("chip8core")
    clock = pygame.time.Clock()
    beep = make_beep(pygame)
    on_color, off_color = create_color_scheme(color_scheme)

    logger.info("Controls: ESC=Quit, P=Pause, F5=Reset, F1=Registers, +/-=Speed")

    running = True
    paused = False
    frame = machine.framebuffer

    while running:
        clock.tick(TIMER_HZ)

        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False
            elif event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    running = False
                elif event.key == pygame.K_p:
                    paused = not paused
                elif event.key == pygame.K_F5:
                    machine.reset()
                    paused = False
                elif event.key == pygame.K_F1:
                    machine.dump_registers()
                elif event.key == pygame.K_EQUALS:
                    ipf = min(100, ipf + 2)
                    logger.info(f"Speed: {ipf} instructions per frame")
                elif event.key == pygame.K_MINUS:
                    ipf = max(1, ipf - 2)
                    logger.info(f"Speed: {ipf} instructions per frame")
                elif event.key in key_map:
                    machine.key_down(key_map[event.key])
            elif event.type == pygame.KEYUP:
                if event.key in key_map:
                    machine.key_up(key_map[event.key])

        if not paused:
            try:
                for _ in range(ipf):
                    frame = machine.tick()
            except Chip8Error:
                machine.dump_registers()
                paused = True

            if machine.tick_timers() and beep is not None:
                beep.play()

        rgb = chip8_display_to_rgb(frame, scale, on_color, off_color)
        surface = pygame.surfarray.make_surface(rgb.transpose(1, 0, 2))
        screen.blit(surface, (0, 0))
        pygame.display.flip()

    pygame.quit()


def run_headless(machine, logger, steps, ipf=10):
    """Execute ``steps`` instructions with a timer tick every ``ipf`` of them."""
    start = time.time()
    beeps = 0
    executed = 0
    with progress_bar(steps) as bar:
        try:
            for executed in range(1, steps + 1):
                machine.tick()
                if executed % ipf == 0 and machine.tick_timers():
                    beeps += 1
                bar.update(1)
        except Chip8Error:
            machine.dump_registers()
            return 1
    elapsed = time.time() - start
    lit = int(np.count_nonzero(machine.framebuffer))
    logger.info(
        f"Executed {executed} instructions in {elapsed:.2f}s "
        f"({executed / elapsed if elapsed > 0 else 0:.0f} Hz), {beeps} beeps, {lit} pixels lit"
    )
    return 0


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Run a CHIP-8 ROM")
    parser.add_argument("-r", "--rom", type=str, required=True, help="Path to the ROM image")
    parser.add_argument("--scale", type=int, default=10, help="Window pixels per CHIP-8 pixel (default: 10)")
    parser.add_argument(
        "--ipf",
        type=int,
        default=10,
        help="Instructions per 60 Hz frame (default: 10, i.e. 600 Hz)",
    )
    parser.add_argument(
        "--color-scheme",
        type=str,
        default="classic",
        choices=sorted(COLOR_SCHEMES),
        help="Display colors (default: classic)",
    )
    parser.add_argument("--seed", type=int, default=0, help="Random seed for CXNN (default: 0)")
    parser.add_argument("--headless", action="store_true", help="Run without a window")
    parser.add_argument(
        "--steps",
        type=int,
        default=10000,
        help="Instructions to execute in headless mode (default: 10000)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Console log level (default: INFO)",
    )
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    logger = MachineLogger(log_level=args.log_level)
    machine = Machine(seed=args.seed, logger=logger)

    try:
        machine.load_rom(args.rom)
    except (OSError, Chip8Error) as e:
        logger.error(f"Could not load {args.rom}: {e}")
        return 1

    if args.headless:
        return run_headless(machine, logger, args.steps, args.ipf)

    run_window(machine, logger, args.scale, args.ipf, args.color_scheme)
    return 0


if __name__ == "__main__":
    sys.exit(main())
