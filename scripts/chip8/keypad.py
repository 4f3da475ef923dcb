import logging

logger = logging.getLogger(__name__)


# ******************** STATIC SECTION
KEYS_COUNT = 16


# ******************** I/O SECTION
class Keypad:
    """
    16 key hexadecimal keypad (0x0 - 0xF)
    each key is level-sensed: it stays down from key_down() until key_up()
    """
    def __init__(self):
        self.keys = [False] * KEYS_COUNT

    def __str__(self):
        down = [f"{k:X}" for k in range(KEYS_COUNT) if self.keys[k]]
        return f"KEYS_DOWN:[{','.join(down)}]"

    @staticmethod
    def _check(key):
        if not 0 <= key < KEYS_COUNT:
            raise ValueError(f"The CHIP-8 keypad has keys 0x0 to 0xF, got {key!r}")

    def key_down(self, key):
        self._check(key)
        self.keys[key] = True
        logger.debug(f"key 0x{key:X} down")

    def key_up(self, key):
        self._check(key)
        self.keys[key] = False
        logger.debug(f"key 0x{key:X} up")

    def release_all(self):
        self.keys = [False] * KEYS_COUNT

    def is_key_down(self, key):
        return self.keys[key & 0xF]

    def get_first_key_down(self):
        """return the lowest key currently down, None if no key is down"""
        for key, down in enumerate(self.keys):
            if down:
                return key
        return None

    def wait_for_key_down(self):
        """
        non-blocking read used by the LD Vx, K instruction
        a None result means no key is down yet and the caller has to ask again on its next cycle
        """
        return self.get_first_key_down()
