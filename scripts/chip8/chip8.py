# CHIP-8 INFO
# https://chip-8.github.io/extensions/#chip-8
# https://chip-8.github.io/links/
#
# MASTERING CHIP-8
# https://github.com/mattmikolay/chip-8/wiki/Mastering-CHIP%E2%80%908
#
# TEST SUITE
# https://github.com/Timendus/chip8-test-suite


import logging
import random
from functools import wraps

from keypad import Keypad
from screen import Screen

logger = logging.getLogger(__name__)


# ******************** STATIC SECTION
C8_FONTS = [0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
            0x20, 0x60, 0x20, 0x20, 0x70,  # 1
            0xF0, 0x10, 0xF0, 0x80, 0xF0,  # 2
            0xF0, 0x10, 0xF0, 0x10, 0xF0,  # 3
            0x90, 0x90, 0xF0, 0x10, 0x10,  # 4
            0xF0, 0x80, 0xF0, 0x10, 0xF0,  # 5
            0xF0, 0x80, 0xF0, 0x90, 0xF0,  # 6
            0xF0, 0x10, 0x20, 0x40, 0x40,  # 7
            0xF0, 0x90, 0xF0, 0x90, 0xF0,  # 8
            0xF0, 0x90, 0xF0, 0x10, 0xF0,  # 9
            0xF0, 0x90, 0xF0, 0x90, 0x90,  # A
            0xE0, 0x90, 0xE0, 0x90, 0xE0,  # B
            0xF0, 0x80, 0x80, 0x80, 0xF0,  # C
            0xE0, 0x90, 0x90, 0x90, 0xE0,  # D
            0xF0, 0x80, 0xF0, 0x80, 0xF0,  # E
            0xF0, 0x80, 0xF0, 0x80, 0x80]  # F

FONT_START_ADDRESS = 0x000
FONT_CHAR_SIZE = 5
ROM_START_ADDRESS = 0x200
MEMORY_SIZE = 4096
ADDRESS_MASK = 0xFFF
MAX_ROM_SIZE = MEMORY_SIZE - ROM_START_ADDRESS
STACK_SIZE = 16
TIMER_RESET_VALUE = 0xFF
INSTRUCTION_SIZE = 0x2


# ******************** ERRORS SECTION
class Chip8Error(Exception):
    """base class of every error raised by the interpreter"""

class RomError(Chip8Error, ValueError):
    pass

class StackOverflowError(Chip8Error, IndexError):
    pass

class StackUnderflowError(Chip8Error, IndexError):
    pass


# ******************** UTILITIES SECTION
def asm(msg):
    """decorator to log the ASM of the instruction being called"""
    def decorator(fn):
        @wraps(fn)
        def wrapper_fn(*args, **kwargs):
            mem_addr = (args[0].pc - INSTRUCTION_SIZE) & ADDRESS_MASK  # args[0] equals self of the decorated method, pc is already advanced
            vals = fn(*args, **kwargs)                  # use the locals() values of each decorated function in the message
            if logger.isEnabledFor(logging.DEBUG):
                vals['mem_addr'] = mem_addr
                logger.debug(msg.format(**vals))
        return wrapper_fn
    return decorator

def read_rom(path):
    """read a ROM file from path, OSError is left to the caller"""
    with open(path, mode='rb') as f:
        return f.read()


# ******************** MEMORY SECTION
# ********** FIXED SIZE CALL STACK OF 16 ADDRESSES PLUS ITS STACK POINTER
class Stack:
    def __init__(self):
        self.addr_list = [0] * STACK_SIZE
        self.sp = 0

    def __str__(self):
        return f"{self.addr_list[:self.sp]}"

    def __len__(self):
        return self.sp

    def reset(self):
        self.addr_list = [0] * STACK_SIZE
        self.sp = 0

    def append(self, address):
        if self.sp >= STACK_SIZE:
            raise StackOverflowError(f"The CHIP-8 stack can contain at most {STACK_SIZE} addresses. Limit exceeded")
        self.addr_list[self.sp] = address
        self.sp += 1

    def pop(self):
        if self.sp == 0:
            raise StackUnderflowError("Return from subroutine with an empty CHIP-8 stack")
        self.sp -= 1
        return self.addr_list[self.sp]

# ********** WRAPS A BYTEARRAY TO REPRESENT THE MAIN MEMORY WITH A LIMITED SIZE OF 4KB
class Memory:
    def __init__(self):
        self.inner = bytearray(MEMORY_SIZE)
        self.reset()

    def __setitem__(self, key, value):
        self.inner[key & ADDRESS_MASK] = value

    def __getitem__(self, index):
        return self.inner[index & ADDRESS_MASK]

    def __len__(self):
        return len(self.inner)

    def reset(self):
        """zero the whole memory, then put the built-in font back at its place"""
        self.inner[:] = bytes(MEMORY_SIZE)
        self.inner[FONT_START_ADDRESS:FONT_START_ADDRESS+len(C8_FONTS)] = bytes(C8_FONTS)

    def load(self, data, address):
        self.inner[address:address+len(data)] = bytes(data)


# ******************** CPU SECTION
class Chip8:
    """
    CHIP-8 interpreter: memory, registers, timers, call stack and the screen and keypad devices
    the host drives it by calling cycle() at the instruction rate and decrement_timers() at 60Hz
    """
    def __init__(self, s=None, k=None, rng=None):
        self.mem = Memory()
        self.stack = Stack()
        self.v_regs = [0] * 16
        self.pc = ROM_START_ADDRESS
        self.idx = 0    # specify where the sprites reside in memory
        self.dt = 0     # delay timer, active when non-zero
        self.st = 0     # sound timer, active when non-zero
        self.waiting_for_key = None     # register waiting for a keypress, None when running
        self.screen = s if s is not None else Screen()
        self.keypad = k if k is not None else Keypad()
        self.rng = rng if rng is not None else random.Random()
        # opcodes are matched against these after being masked by decode()
        self.instructions = {
            0x00E0: self._clear_screen,
            0x00EE: self._return,
            0x1000: self._jump,
            0x2000: self._call_addr,
            0x3000: self._skip_if_eq,
            0x4000: self._skip_if_not_eq,
            0x5000: self._skip_if_eq_regs,
            0x6000: self._set_vk,
            0x7000: self._add_to_vk,
            0x8000: self._set_vx_to_vy,
            0x8001: self._set_vx_or_vy,
            0x8002: self._set_vx_and_vy,
            0x8003: self._set_vx_xor_vy,
            0x8004: self._add_vx_vy,
            0x8005: self._sub_vx_vy,
            0x8006: self._shr,
            0x8007: self._subn_vx_vy,
            0x800E: self._shl,
            0x9000: self._skip_if_not_eq_regs,
            0xA000: self._set_idx,
            0xB000: self._jump_plus,
            0xC000: self._random_byte_and,
            0xD000: self._to_screen,
            0xE09E: self._skip_if_pressed,
            0xE0A1: self._skip_if_not_pressed,
            0xF007: self._set_vx_dt,
            0xF00A: self._wait_keypress,
            0xF015: self._set_dt_vx,
            0xF018: self._set_st,
            0xF01E: self._add_to_idx,
            0xF029: self._select_char,
            0xF033: self._bcd_repr,
            0xF055: self._store_vregs,
            0xF065: self._load_vregs,
        }
        self.reset()

    def __str__(self):
        devices = f"SCREEN:\n{self.screen}\nKEYPAD:{self.keypad}"
        registers = f"PC_REGISTER:0x{self.pc:04x} | IDX_REGISTER:0x{self.idx:04x} | VARIABLE_REGISTERS:{self.v_regs}"
        timers = f"DELAY_TIMER:{self.dt} | SOUND_TIMER:{self.st}"
        stack = f"STACK:{self.stack} | SP:{self.sp}"
        return f"{registers}\n{timers}\n{stack}\n{devices}"

    @property
    def sp(self):
        return self.stack.sp

    def reset(self):
        """bring every part of the machine to its initial state, the font is loaded again"""
        self.mem.reset()
        self.stack.reset()
        self.v_regs = [0] * 16
        self.pc = ROM_START_ADDRESS
        self.idx = 0
        self.dt = TIMER_RESET_VALUE
        self.st = TIMER_RESET_VALUE
        self.waiting_for_key = None
        self.screen.clear()
        self.keypad.release_all()

    def load_rom(self, data):
        """copy the ROM bytes into memory starting at 0x200 without interpreting them"""
        if len(data) % INSTRUCTION_SIZE:
            raise RomError(f"ROM of {len(data)} bytes ends in the middle of an instruction")
        if len(data) > MAX_ROM_SIZE:
            raise RomError(f"ROM of {len(data)} bytes does not fit in memory (max {MAX_ROM_SIZE} bytes)")
        self.mem.load(data, ROM_START_ADDRESS)

    def load_rom_file(self, path):
        self.load_rom(read_rom(path))
        logger.info(f"The ROM at path {path} has been loaded successfully")

    def decrement_timers(self):
        # delay/sound timers (dt/st)
        if self.dt > 0:
            self.dt -= 1
        if self.st > 0:
            self.st -= 1

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: SKP V{x}")
    def _skip_if_pressed(self, opcode):
        """skip the following instruction if the key corresponding to the hex value stored in Vx is pressed"""
        x = (opcode & 0x0F00) >> 8
        key = self.v_regs[x]
        if self.keypad.is_key_down(key):
            self._goto_next_instruction()
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: SKNP V{x}")
    def _skip_if_not_pressed(self, opcode):
        """skip the following instruction if the key corresponding to the hex value stored in Vx is NOT pressed"""
        x = (opcode & 0x0F00) >> 8
        key = self.v_regs[x]
        if not self.keypad.is_key_down(key):
            self._goto_next_instruction()
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: LD V{x}, K")
    def _wait_keypress(self, opcode):
        """wait for a key press and store its value in Vx"""
        x = (opcode & 0x0F00) >> 8
        key = self.keypad.wait_for_key_down()
        if key is None:
            self.pc = (self.pc - INSTRUCTION_SIZE) & ADDRESS_MASK    # stay on the same instruction until a key is pressed
            self.waiting_for_key = x
        else:
            self.v_regs[x] = key
            self.waiting_for_key = None
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: LD V{x}, DT")
    def _set_vx_dt(self, opcode):
        """set Vx = DT (delay timer) value"""
        x = (opcode & 0x0F00) >> 8
        self.v_regs[x] = self.dt
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: LD DT, V{x}")
    def _set_dt_vx(self, opcode):
        """set DT (delay timer) = Vx"""
        x = (opcode & 0x0F00) >> 8
        self.dt = self.v_regs[x]
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: CLS")
    def _clear_screen(self, opcode):
        self.screen.clear()
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: RET")
    def _return(self, opcode):
        """return from a subroutine"""
        self.pc = self.stack.pop()
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: JP 0x{address:04x}")
    def _jump(self, opcode):
        address = opcode & 0x0FFF
        self.pc = address
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: CALL 0x{address:04x}")
    def _call_addr(self, opcode):
        address = opcode & 0x0FFF
        self.stack.append(self.pc)
        self.pc = address
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: SE V{x}, {comparison_value}")
    def _skip_if_eq(self, opcode):
        x = (opcode & 0x0F00) >> 8
        comparison_value = opcode & 0x00FF
        if self.v_regs[x] == comparison_value:
            self._goto_next_instruction()
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: SNE V{x}, {comparison_value}")
    def _skip_if_not_eq(self, opcode):
        x = (opcode & 0x0F00) >> 8
        comparison_value = opcode & 0x00FF
        if self.v_regs[x] != comparison_value:
            self._goto_next_instruction()
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: SE V{x}, V{y}")
    def _skip_if_eq_regs(self, opcode):
        x, y = (opcode & 0x0F00) >> 8, (opcode & 0x00F0) >> 4
        if self.v_regs[x] == self.v_regs[y]:
            self._goto_next_instruction()
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: SNE V{x}, V{y}")
    def _skip_if_not_eq_regs(self, opcode):
        x, y = (opcode & 0x0F00) >> 8, (opcode & 0x00F0) >> 4
        if self.v_regs[x] != self.v_regs[y]:
            self._goto_next_instruction()
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: LD V{x}, {value}")
    def _set_vk(self, opcode):
        """set the value of one of the 16 variable registers, Vx"""
        x, value = (opcode & 0x0F00) >> 8, opcode & 0x00FF
        self.v_regs[x] = value
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: LD V{x}, V{y}")
    def _set_vx_to_vy(self, opcode):
        """set the value of Vx equal to that of Vy"""
        x, y = (opcode & 0x0F00) >> 8, (opcode & 0x00F0) >> 4
        self.v_regs[x] = self.v_regs[y]
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: OR V{x}, V{y}")
    def _set_vx_or_vy(self, opcode):
        """set the value of Vx to Vx OR Vy"""
        x, y = (opcode & 0x0F00) >> 8, (opcode & 0x00F0) >> 4
        self.v_regs[x] |= self.v_regs[y]
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: AND V{x}, V{y}")
    def _set_vx_and_vy(self, opcode):
        """set the value of Vx to Vx AND Vy"""
        x, y = (opcode & 0x0F00) >> 8, (opcode & 0x00F0) >> 4
        self.v_regs[x] &= self.v_regs[y]
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: XOR V{x}, V{y}")
    def _set_vx_xor_vy(self, opcode):
        """set the value of Vx to Vx XOR Vy"""
        x, y = (opcode & 0x0F00) >> 8, (opcode & 0x00F0) >> 4
        self.v_regs[x] ^= self.v_regs[y]
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: ADD V{x}, V{y}")
    def _add_vx_vy(self, opcode):
        """set the value of Vx to Vx + Vy, VF = carry"""
        x, y = (opcode & 0x0F00) >> 8, (opcode & 0x00F0) >> 4
        total = self.v_regs[x] + self.v_regs[y]
        self.v_regs[x] = total & 0xFF     # keep only the lowest 8 bits from the result and store them in Vx
        self.v_regs[0xF] = 1 if total > 255 else 0
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: SUB V{x}, V{y}")
    def _sub_vx_vy(self, opcode):
        """set the value of Vx to Vx - Vy, VF = NOT borrow"""
        x, y = (opcode & 0x0F00) >> 8, (opcode & 0x00F0) >> 4
        vx, vy = self.v_regs[x], self.v_regs[y]
        self.v_regs[x] = (vx - vy) & 0xFF
        self.v_regs[0xF] = 1 if vx >= vy else 0
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: SHR V{x}, V{y}")
    def _shr(self, opcode):
        """set Vx equal to Vy SHR 1, VF = the bit shifted out"""
        x, y = (opcode & 0x0F00) >> 8, (opcode & 0x00F0) >> 4
        vy = self.v_regs[y]
        self.v_regs[0xF] = vy & 0x1
        self.v_regs[x] = vy >> 1
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: SUBN V{x}, V{y}")
    def _subn_vx_vy(self, opcode):
        """set the value of Vx to Vy - Vx, VF = NOT borrow"""
        x, y = (opcode & 0x0F00) >> 8, (opcode & 0x00F0) >> 4
        vx, vy = self.v_regs[x], self.v_regs[y]
        self.v_regs[x] = (vy - vx) & 0xFF
        self.v_regs[0xF] = 1 if vy >= vx else 0
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: SHL V{x}, V{y}")
    def _shl(self, opcode):
        """set Vx equal to Vy SHL 1, VF = the bit shifted out"""
        x, y = (opcode & 0x0F00) >> 8, (opcode & 0x00F0) >> 4
        vy = self.v_regs[y]
        self.v_regs[0xF] = vy >> 7
        self.v_regs[x] = (vy << 1) & 0xFF   # multiply by 2 and keep only the lowest 8 bits from the result
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: ADD V{x}, {value}")
    def _add_to_vk(self, opcode):
        """add to the value already present in one of the variable registers, VF untouched"""
        x, value = (opcode & 0x0F00) >> 8, opcode & 0x00FF
        self.v_regs[x] = (self.v_regs[x] + value) & 0xFF    # keep only the lowest 8 bits from the result and store them in Vx
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: LD I, 0x{value:04x}")
    def _set_idx(self, opcode):
        """set the value of the I register"""
        value = opcode & 0x0FFF
        self.idx = value
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: JP V0, 0x{address:04x}")
    def _jump_plus(self, opcode):
        address = opcode & 0x0FFF
        v0 = self.v_regs[0x0]
        self.pc = (address + v0) & ADDRESS_MASK
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: RND V{x}, 0x{kk:02x}")
    def _random_byte_and(self, opcode):
        x, kk = (opcode & 0x0F00) >> 8, opcode & 0x00FF
        rnd = self.rng.randint(0, 255)
        self.v_regs[x] = rnd & kk
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: LD ST, V{register}")
    def _set_st(self, opcode):
        """set ST = Vx"""
        register = (opcode & 0x0F00) >> 8
        self.st = self.v_regs[register]
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: ADD I, V{register}")
    def _add_to_idx(self, opcode):
        """set I = I + Vx"""
        register = (opcode & 0x0F00) >> 8
        self.idx = (self.idx + self.v_regs[register]) & 0xFFFF
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: LD F, V{register}")
    def _select_char(self, opcode):
        """set I to location of sprite for digit Vx"""
        register = (opcode & 0x0F00) >> 8
        digit = self.v_regs[register] & 0xF
        self.idx = FONT_START_ADDRESS + digit * FONT_CHAR_SIZE    # each character font is made of 5 bytes
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: LD [I], V{x}")
    def _store_vregs(self, opcode):
        """store registers V0 through Vx (included) in memory starting at location I"""
        x = (opcode & 0x0F00) >> 8
        for i in range(x + 1):
            self.mem[self.idx + i] = self.v_regs[i]
        self.idx = (self.idx + x + 1) & 0xFFFF
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: LD V{x}, [I]")
    def _load_vregs(self, opcode):
        """read registers V0 through Vx (included) from memory starting at location I"""
        x = (opcode & 0x0F00) >> 8
        for i in range(x + 1):
            self.v_regs[i] = self.mem[self.idx + i]
        self.idx = (self.idx + x + 1) & 0xFFFF
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: LD B, V{x}")
    def _bcd_repr(self, opcode):
        """store the hundreds digit of Vx in memory at I, the tens digit at I+1, the ones digit at I+2"""
        x = (opcode & 0x0F00) >> 8
        value = self.v_regs[x]
        hundreds, tens, ones = value // 100, (value // 10) % 10, value % 10
        self.mem[self.idx], self.mem[self.idx+1], self.mem[self.idx+2] = hundreds, tens, ones
        return locals()

    @asm("mem_addr: 0x{mem_addr:04x}    instruction: DRW V{x}, V{y}, {n_bytes}")
    def _to_screen(self, opcode):
        """display n-byte sprite starting at memory location I at (Vx, Vy), set VF = collision"""
        x, y = (opcode & 0x0F00) >> 8, (opcode & 0x00F0) >> 4
        n_bytes = opcode & 0x000F
        sprite = [self.mem[self.idx + i] for i in range(n_bytes)]
        # sprites are XORed onto the existing screen and if this
        # causes any pixel to be erased then VF=1, otherwise VF=0
        collision = self.screen.draw_sprite(self.v_regs[x], self.v_regs[y], sprite)
        self.v_regs[0xF] = 1 if collision else 0
        return locals()

    def _goto_next_instruction(self):
        self.pc = (self.pc + INSTRUCTION_SIZE) & ADDRESS_MASK

    def decode(self, opcode):
        """decode opcodes using masks and return respective function, None if the opcode is unknown"""
        # WATCH OUT: masks order is important!!!
        # as the for loop breaks out as soon as it finds a match
        masks = {
            0xFFFF: [0x00E0,0x00EE],
            0xF0FF: [0xE09E,0xE0A1,0xF007,0xF00A,0xF015,0xF018,0xF01E,0xF029,0xF033,0xF055,0xF065],
            0xF00F: [0x5000,0x8000,0x8001,0x8002,0x8003,0x8004,0x8005,0x8006,0x8007,0x800E,0x9000],
            0xF000: [0x1000,0x2000,0x3000,0x4000,0x6000,0x7000,0xA000,0xB000,0xC000,0xD000],
        }
        for m, ops in masks.items():
            if (opcode & m) in ops:
                return self.instructions[opcode & m]
        return None

    def read_instruction(self):
        """fetch the big-endian opcode at pc (each instruction is two bytes long)"""
        return self.mem[self.pc] << 8 | self.mem[self.pc + 1]

    def process_instruction(self, opcode):
        """execute one opcode, pc is left pointing at the next instruction to fetch"""
        self._goto_next_instruction()
        instruction = self.decode(opcode)
        if instruction is None:
            # unknown opcodes (0nnn machine calls included) are skipped
            logger.warning(f"mem_addr: 0x{(self.pc - INSTRUCTION_SIZE) & ADDRESS_MASK:04x}    unknown instruction: 0x{opcode:04x}, skipped")
            return
        instruction(opcode)

    def cycle(self):
        """emulate one machine cycle: fetch, decode and execute the opcode at pc"""
        self.process_instruction(self.read_instruction())
