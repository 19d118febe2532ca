"""Shared machine constants for the CHIP-8 core.

This module centralizes the memory map, display geometry and timing defaults
used by the machine, the executor and the tests.
"""

# Total addressable memory.
MEMORY_SIZE = 4096
ADDRESS_MASK = MEMORY_SIZE - 1

# 0x000 - 0x1FF Interpreter (font glyphs)
# 0x200 - 0xEBF Program
# 0xEA0 - 0xEFF Call stack
# 0xF00 - 0xFFF Display
PROGRAM_OFFSET = 0x200
PROGRAM_END = 0xEBF
PROGRAM_SIZE = PROGRAM_END - PROGRAM_OFFSET + 1  # 3264 bytes

STACK_OFFSET = 0xEA0
STACK_DEPTH = 16
STACK_SIZE = STACK_DEPTH * 2  # 16 return addresses, 2 bytes each

DISPLAY_OFFSET = 0xF00
DISPLAY_END = 0xFFF
DISPLAY_SIZE = DISPLAY_END - DISPLAY_OFFSET + 1  # 256 bytes
DISPLAY_WIDTH = 64
DISPLAY_HEIGHT = 32

# Instruction words are two bytes; a skip jumps over one more instruction.
INSTRUCTION_SIZE = 2
SKIP_SIZE = INSTRUCTION_SIZE * 2

REGISTER_COUNT = 16
FLAG_REGISTER = 0xF

BYTE_MASK = 0xFF
WORD_MASK = 0xFFFF

# Driver defaults: 200 instructions per second, timers decremented every
# TIMER_CYCLE executed instructions.
INSTRUCTION_RATE = 200
TIMER_CYCLE = 2

KEY_COUNT = 16

FONT_OFFSET = 0x000
GLYPH_SIZE = 5

# Built-in hexadecimal font, 4x5 pixels per glyph (upper nibble of each row).
FONT = bytes(
    [
        0xF0, 0x90, 0x90, 0x90, 0xF0,  # 0
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
        0xF0, 0x80, 0xF0, 0x80, 0x80,  # F
    ]
)

GLYPH_COUNT = len(FONT) // GLYPH_SIZE
