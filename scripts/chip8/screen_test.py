import unittest
from screen import Screen, get_mask


class TestMask(unittest.TestCase):
    def test_leftmost_byte(self):
        self.assertEqual(get_mask(1 << 7, 0), 1 << 63)

    def test_rightmost_byte(self):
        self.assertEqual(get_mask(5, 56), 5)

    def test_wraps_around(self):
        # 0xFF at column 60: columns 60..63 and 0..3
        self.assertEqual(get_mask(0xFF, 60), (0xF << 60) | 0xF)


class TestScreen(unittest.TestCase):
    def setUp(self):
        self.screen = Screen()

    def test_get_pixel(self):
        self.screen.pixels[0] |= 1 << 63
        self.assertTrue(self.screen.get_pixel(0, 0))
        self.screen.pixels[10] |= 1
        self.assertTrue(self.screen.get_pixel(63, 10))
        self.assertFalse(self.screen.get_pixel(62, 10))

    def test_sprite_simple(self):
        # draw a 8x2 rectangle in the top left corner
        self.assertFalse(self.screen.draw_sprite(0, 0, [255, 255]))
        self.assertEqual(self.screen.pixels[0] >> 56, 255)
        self.assertEqual(self.screen.pixels[1] >> 56, 255)
        self.assertEqual(self.screen.pixels[2], 0)

        # erase the left half of the rectangle
        self.assertTrue(self.screen.draw_sprite(0, 0, [0b11110000, 0b11110000]))
        self.assertEqual(self.screen.pixels[0] >> 56, 15)
        self.assertEqual(self.screen.pixels[1] >> 56, 15)
        self.assertEqual(self.screen.pixels[2], 0)

    def test_draw_twice_is_identity(self):
        self.screen.draw_sprite(3, 4, [0x3C, 0x42, 0x81])
        before = self.screen.rows()
        sprite = [0xF0, 0x90, 0xF0, 0x90, 0x90]
        self.screen.draw_sprite(5, 5, sprite)
        self.assertNotEqual(self.screen.rows(), before)
        self.screen.draw_sprite(5, 5, sprite)
        self.assertEqual(self.screen.rows(), before)

    def test_wraps_horizontally(self):
        self.assertFalse(self.screen.draw_sprite(60, 0, [0xFF]))
        for x in range(64):
            self.assertEqual(self.screen.get_pixel(x, 0), x < 4 or x >= 60, f"column {x}")
        for y in range(1, 32):
            self.assertEqual(self.screen.pixels[y], 0)

    def test_wraps_vertically(self):
        self.screen.draw_sprite(5, 30, [0x80, 0x80, 0x80, 0x80])
        for y in (30, 31, 0, 1):
            self.assertTrue(self.screen.get_pixel(5, y))
        self.assertFalse(self.screen.get_pixel(5, 2))
        self.assertFalse(self.screen.get_pixel(5, 29))

    def test_collision_on_wrapped_pixel(self):
        self.screen.draw_sprite(0, 0, [0x80])
        self.assertTrue(self.screen.draw_sprite(63, 0, [0x40]))
        self.assertFalse(self.screen.get_pixel(0, 0))

    def test_clear(self):
        self.screen.draw_sprite(10, 10, [0xFF, 0xFF])
        self.screen.dirty = False
        self.screen.clear()
        self.assertEqual(self.screen.rows(), [0] * 32)
        self.assertTrue(self.screen.dirty)

    def test_draw_marks_dirty(self):
        self.screen.dirty = False
        self.screen.draw_sprite(0, 0, [0x01])
        self.assertTrue(self.screen.dirty)


if __name__ == "__main__":
    unittest.main()
