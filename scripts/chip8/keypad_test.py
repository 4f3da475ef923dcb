import unittest
from keypad import Keypad


class TestKeypad(unittest.TestCase):
    def setUp(self):
        self.keypad = Keypad()

    def test_all_keys_up_at_start(self):
        for k in range(16):
            self.assertFalse(self.keypad.is_key_down(k))
        self.assertIsNone(self.keypad.get_first_key_down())

    def test_set_keys(self):
        self.keypad.key_down(0)
        self.keypad.key_down(15)
        self.assertTrue(self.keypad.is_key_down(0))
        self.assertTrue(self.keypad.is_key_down(15))

        self.keypad.key_up(0)
        self.keypad.key_down(9)
        self.assertFalse(self.keypad.is_key_down(0))
        self.assertTrue(self.keypad.is_key_down(9))
        self.assertTrue(self.keypad.is_key_down(15))

    def test_first_key_down_is_the_lowest(self):
        self.keypad.key_down(0xC)
        self.keypad.key_down(0x3)
        self.assertEqual(self.keypad.get_first_key_down(), 0x3)
        self.keypad.key_up(0x3)
        self.assertEqual(self.keypad.get_first_key_down(), 0xC)

    def test_wait_for_key_down(self):
        self.assertIsNone(self.keypad.wait_for_key_down())
        self.keypad.key_down(7)
        self.assertEqual(self.keypad.wait_for_key_down(), 7)
        # reading does not consume the key
        self.assertTrue(self.keypad.is_key_down(7))

    def test_release_all(self):
        for k in (1, 5, 0xA):
            self.keypad.key_down(k)
        self.keypad.release_all()
        self.assertIsNone(self.keypad.get_first_key_down())

    def test_out_of_range_key(self):
        with self.assertRaises(ValueError):
            self.keypad.key_down(16)
        with self.assertRaises(ValueError):
            self.keypad.key_up(-1)

    def test_str(self):
        self.keypad.key_down(0xA)
        self.keypad.key_down(2)
        self.assertEqual(str(self.keypad), "KEYS_DOWN:[2,A]")


if __name__ == "__main__":
    unittest.main()
