import argparse
import logging
import os
import sys

os.environ["PYGAME_HIDE_SUPPORT_PROMPT"] = "no welcome message"   # this env var disable pygame's welcome message when imported
import pygame
from pygame.locals import (
    K_1, K_2, K_3, K_4,
    K_q, K_w, K_e, K_r,
    K_a, K_s, K_d, K_f,
    K_z, K_x, K_c, K_v,
    K_ESCAPE, K_SPACE, K_n,
)

from chip8 import Chip8, Chip8Error
from screen import SCREEN_HEIGHT, SCREEN_WIDTH

logger = logging.getLogger(__name__)


# ******************** STATIC SECTION
# COSMAC VIP keypad laid over the left side of a QWERTY keyboard
#   1 2 3 C        1 2 3 4
#   4 5 6 D   ->   Q W E R
#   7 8 9 E        A S D F
#   A 0 B F        Z X C V
KEY_MAPPINGS = {
    K_1: 0x1, K_2: 0x2, K_3: 0x3, K_4: 0xC,
    K_q: 0x4, K_w: 0x5, K_e: 0x6, K_r: 0xD,
    K_a: 0x7, K_s: 0x8, K_d: 0x9, K_f: 0xE,
    K_z: 0xA, K_x: 0x0, K_c: 0xB, K_v: 0xF,
}

DEBUG = True if int(os.getenv('DEBUG', 0)) >= 1 else False
FPS = 60                # timers tick once per frame
DEFAULT_SPEED = 600     # instructions per second
SCALE = 15
BLUE = pygame.Color(80,69,155,255)
LIGHT_BLUE = pygame.Color(136,126,203,255)


# ******************** UTILITIES SECTION
def get_args(argv=None):
    parser = argparse.ArgumentParser(description="play a CHIP-8 ROM")
    parser.add_argument("-f", "--file", required=True, help="input rom file")
    parser.add_argument("--speed", type=int, default=DEFAULT_SPEED, help="instructions executed per second")
    parser.add_argument("--scale", type=int, default=SCALE, help="size in pixels of a CHIP-8 pixel")
    parser.add_argument("--paused", action="store_true", help="start paused, N steps one instruction")
    args = parser.parse_args(argv)
    if args.speed < FPS:
        parser.error(f"--speed must be at least {FPS}")
    if args.scale < 1:
        parser.error("--scale must be a positive number")
    return args


# ******************** I/O SECTION
class Window:
    """pygame surface showing the CHIP-8 screen, every CHIP-8 pixel is a scale x scale square"""
    def __init__(self, screen, s=SCALE, bg_color=BLUE, fg_color=LIGHT_BLUE):
        self.screen = screen
        self.scale = s
        self.background = bg_color
        self.foreground = fg_color
        self.surface = pygame.display.set_mode(
            (SCREEN_WIDTH * self.scale, SCREEN_HEIGHT * self.scale),
        )
        self.surface.fill(self.background)

    def render(self):
        """repaint the surface from the CHIP-8 screen, only if something was drawn since the last call"""
        if not self.screen.dirty:
            return
        self.surface.fill(self.background)
        for y in range(SCREEN_HEIGHT):
            for x in range(SCREEN_WIDTH):
                if self.screen.get_pixel(x, y):
                    pygame.draw.rect(
                        self.surface,
                        self.foreground,
                        (x * self.scale, y * self.scale, self.scale, self.scale)
                    )
        self.screen.dirty = False
        pygame.display.flip()


class Runner:
    """host loop state: the running/paused flags and the event handling bound to one interpreter"""
    def __init__(self, chip, speed=DEFAULT_SPEED, paused=False):
        self.chip = chip
        self.cycles_per_frame = max(1, speed // FPS)
        self.paused = paused
        self.running = True

    def handle_event(self, event):
        if event.type == pygame.QUIT:
            self.running = False
        elif event.type == pygame.KEYDOWN:
            if event.key == K_ESCAPE:
                self.running = False
            elif event.key == K_SPACE:
                self.paused = not self.paused
                logger.info("paused" if self.paused else "resumed")
            elif event.key == K_n and self.paused:
                self.chip.cycle()
                logger.info(f"stepped to 0x{self.chip.pc:04x}\n{self.chip}")
            elif event.key in KEY_MAPPINGS:
                self.chip.keypad.key_down(KEY_MAPPINGS[event.key])     # register keypress
        elif event.type == pygame.KEYUP:
            if event.key in KEY_MAPPINGS:
                self.chip.keypad.key_up(KEY_MAPPINGS[event.key])
        elif event.type == pygame.WINDOWFOCUSLOST:
            self.chip.keypad.release_all()

    def frame(self):
        """emulate one frame worth of cycles, then tick the timers once"""
        if self.paused:
            return
        for _ in range(self.cycles_per_frame):
            self.chip.cycle()
        self.chip.decrement_timers()


# ******************** ENTRY POINT SECTION
def main(argv=None):
    args = get_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if DEBUG else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    chip = Chip8()
    try:
        chip.load_rom_file(args.file)
    except (OSError, Chip8Error) as e:
        sys.exit(f"Cannot load ROM {args.file}: {e}")
    # pygame initialization
    pygame.init()
    clock = pygame.time.Clock()
    pygame.display.set_caption(os.path.basename(args.file))
    window = Window(chip.screen, s=args.scale)
    runner = Runner(chip, speed=args.speed, paused=args.paused)
    # emulation loop
    try:
        while runner.running:
            clock.tick(FPS)
            # process user input
            # loop throught the event queue
            for event in pygame.event.get():
                runner.handle_event(event)
            runner.frame()
            window.render()
    except Chip8Error as e:
        logger.error(f"********** THE EMULATOR CRASHED WITH THE FOLLOWING STATE\n{chip}")
        sys.exit(f"{type(e).__name__}: {e}")
    finally:
        pygame.quit()


if __name__ == "__main__":
    main()
