# ******************** STATIC SECTION
SCREEN_HEIGHT = 32
SCREEN_WIDTH = 64
SCREEN_RESOLUTION = (SCREEN_WIDTH, SCREEN_HEIGHT)
SPRITE_WIDTH = 8
ROW_MASK = (1 << SCREEN_WIDTH) - 1


# ******************** UTILITIES SECTION
def get_mask(sprite_byte, x):
    """
    shift a sprite byte so that its MSB lands on column x of a 64 bit row
    bits pushed past column 63 come back in from column 0 (wrap around)
    """
    mask = sprite_byte << (SCREEN_WIDTH - SPRITE_WIDTH)     # leftmost byte of the row
    x %= SCREEN_WIDTH
    return ((mask >> x) | (mask << (SCREEN_WIDTH - x))) & ROW_MASK


# ******************** I/O SECTION
class Screen:
    """
    64x32 monochrome bit-plane, (0,0) is the top left pixel and (63,31) the bottom right one
    each row is stored as a 64 bit integer whose most significant bit is column 0
    """
    def __init__(self):
        self.w, self.h = SCREEN_WIDTH, SCREEN_HEIGHT
        self.pixels = [0] * self.h
        self.dirty = True       # tells the host something has to be redrawn

    def __str__(self):
        return "\n".join(f"{row:064b}".replace("0", ".").replace("1", "#") for row in self.pixels)

    def clear(self):
        self.pixels = [0] * self.h
        self.dirty = True

    def get_pixel(self, x, y):
        """return True if pixel is ON, return False if pixel is OFF"""
        return (self.pixels[y] >> (self.w - 1 - x)) & 1 == 1

    def rows(self):
        return list(self.pixels)

    def draw_sprite(self, x, y, sprite):
        """
        XOR every byte of the sprite onto the screen, one row per byte, starting at (x, y)
        the sprite wraps around both axes instead of being clipped
        return True if any pixel that was ON has been turned OFF (collision)
        """
        collision = False
        for i, sprite_byte in enumerate(sprite):
            row = (y + i) % self.h
            mask = get_mask(sprite_byte, x)
            # the only case when a pixel gets erased is when it was ON and is turned ON again
            if self.pixels[row] & mask:
                collision = True
            self.pixels[row] ^= mask
        self.dirty = True
        return collision
