import unittest

import pygame

from chip8 import Chip8
from frontend import KEY_MAPPINGS, Runner, get_args


def key_event(event_type, key):
    return pygame.event.Event(event_type, key=key)


class TestArgs(unittest.TestCase):
    def test_defaults(self):
        args = get_args(["-f", "PONG"])
        self.assertEqual(args.file, "PONG")
        self.assertEqual(args.speed, 600)
        self.assertFalse(args.paused)

    def test_speed_too_low(self):
        with self.assertRaises(SystemExit):
            get_args(["-f", "PONG", "--speed", "10"])


class TestRunner(unittest.TestCase):
    def setUp(self):
        self.chip = Chip8()
        self.runner = Runner(self.chip, speed=600)

    def test_key_mapping_covers_the_keypad(self):
        self.assertEqual(sorted(KEY_MAPPINGS.values()), list(range(16)))

    def test_keys_reach_the_keypad(self):
        self.runner.handle_event(key_event(pygame.KEYDOWN, pygame.K_v))
        self.assertTrue(self.chip.keypad.is_key_down(0xF))
        self.runner.handle_event(key_event(pygame.KEYUP, pygame.K_v))
        self.assertFalse(self.chip.keypad.is_key_down(0xF))

    def test_escape_stops(self):
        self.runner.handle_event(key_event(pygame.KEYDOWN, pygame.K_ESCAPE))
        self.assertFalse(self.runner.running)

    def test_quit_stops(self):
        self.runner.handle_event(pygame.event.Event(pygame.QUIT))
        self.assertFalse(self.runner.running)

    def test_frame_runs_cycles_then_ticks_timers(self):
        # ADD V0, 1 then jump back, 10 cycles per frame
        self.chip.load_rom(bytes([0x70, 0x01, 0x12, 0x00]))
        self.chip.dt = 5
        self.runner.frame()
        self.assertEqual(self.chip.v_regs[0], 5)
        self.assertEqual(self.chip.dt, 4)

    def test_pause_and_step(self):
        self.chip.load_rom(bytes([0x70, 0x01, 0x12, 0x00]))
        self.runner.handle_event(key_event(pygame.KEYDOWN, pygame.K_SPACE))
        self.assertTrue(self.runner.paused)
        self.runner.frame()
        self.assertEqual(self.chip.pc, 0x200)
        self.runner.handle_event(key_event(pygame.KEYDOWN, pygame.K_n))
        self.assertEqual(self.chip.pc, 0x202)
        self.assertEqual(self.chip.v_regs[0], 1)


if __name__ == "__main__":
    unittest.main()
