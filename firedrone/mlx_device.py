"""MLX90640 register access over an I2C bus."""

from __future__ import annotations

import struct
from typing import Protocol

from firedrone.mlx_params import EEPROM_WORDS

DEFAULT_ADDRESS = 0x33
DEFAULT_BUFFER_LENGTH = 32

STATUS_REGISTER = 0x8000
CONTROL_REGISTER = 0x800D
RAM_START = 0x0400
EEPROM_START = 0x2400

_DATA_READY = 0x0008
_FRAME_ATTEMPTS = 5
_CLEAR_STATUS = 0x0030


class I2CBus(Protocol):
    """Byte-level I2C transport used by the sensor driver."""

    def read(self, address: int, register: int, count: int) -> bytes:
        """Send the 16-bit register address, then read ``count`` bytes.

        Raises OSError if the device does not acknowledge.
        """
        ...

    def write(self, address: int, data: bytes) -> None:
        """Write ``data`` to the device; raises OSError if it does not acknowledge."""
        ...


class MLX90640Error(Exception):
    """A sensor communication failure.

    ``code`` is -1 (no acknowledge), -2 (write did not stick) or -8 (frame
    could not be read before new data arrived).
    """

    def __init__(self, code: int, message: str):
        super().__init__(message)
        self.code = code


class MLX90640:
    """An MLX90640 thermal sensor reached through an I2C bus."""

    def __init__(
        self,
        bus: I2CBus,
        address: int = DEFAULT_ADDRESS,
        buffer_length: int = DEFAULT_BUFFER_LENGTH,
    ):
        if buffer_length < 2 or buffer_length % 2:
            raise ValueError("buffer_length must be an even number of at least 2 bytes")
        self.bus = bus
        self.address = address
        self.buffer_length = buffer_length

    def read_words(self, start: int, count: int) -> list[int]:
        """Read ``count`` 16-bit words starting at register ``start``."""
        words: list[int] = []
        remaining = count * 2
        register = start
        while remaining > 0:
            size = min(remaining, self.buffer_length)
            try:
                chunk = self.bus.read(self.address, register, size)
            except OSError as error:
                raise MLX90640Error(-1, f"no acknowledge reading 0x{register:04X}") from error
            if len(chunk) < size:
                raise MLX90640Error(-1, f"short read at 0x{register:04X}")
            words.extend(struct.unpack(f">{size // 2}H", bytes(chunk[:size])))
            remaining -= size
            register += size // 2
        return words

    def write_word(self, register: int, value: int) -> None:
        """Write one word and verify it by reading it back."""
        if not 0 <= value <= 0xFFFF:
            raise ValueError("value must fit in 16 bits")
        try:
            self.bus.write(self.address, struct.pack(">HH", register, value))
        except OSError as error:
            raise MLX90640Error(-1, f"no acknowledge writing 0x{register:04X}") from error
        (check,) = self.read_words(register, 1)
        if check != value:
            raise MLX90640Error(-2, f"write to 0x{register:04X} did not stick")

    def _read_word(self, register: int) -> int:
        return self.read_words(register, 1)[0]

    def dump_ee(self) -> list[int]:
        """Read the whole calibration EEPROM."""
        return self.read_words(EEPROM_START, EEPROM_WORDS)

    def get_frame_data(self) -> list[int]:
        """Wait for a new subpage and return it as 834 words.

        The last two words are the control register and the subpage number.
        """
        status = self._read_word(STATUS_REGISTER)
        while not status & _DATA_READY:
            status = self._read_word(STATUS_REGISTER)

        attempts = 0
        data: list[int] = []
        while status & _DATA_READY and attempts < _FRAME_ATTEMPTS:
            try:
                self.write_word(STATUS_REGISTER, _CLEAR_STATUS)
            except MLX90640Error as error:
                if error.code != -2:
                    raise
            data = self.read_words(RAM_START, EEPROM_WORDS)
            status = self._read_word(STATUS_REGISTER)
            attempts += 1

        if attempts >= _FRAME_ATTEMPTS:
            raise MLX90640Error(-8, "new data arrived while reading the frame")

        control = self._read_word(CONTROL_REGISTER)
        return data + [control, status & 0x0001]

    def _update_control(self, keep_mask: int, set_bits: int) -> None:
        control = self._read_word(CONTROL_REGISTER)
        self.write_word(CONTROL_REGISTER, (control & keep_mask) | set_bits)

    def set_resolution(self, resolution: int) -> None:
        """Set the ADC resolution (0-3)."""
        self._update_control(0xF3FF, (resolution & 0x03) << 10)

    def get_resolution(self) -> int:
        """Return the ADC resolution currently in use."""
        return (self._read_word(CONTROL_REGISTER) & 0x0C00) >> 10

    def set_refresh_rate(self, refresh_rate: int) -> None:
        """Set the refresh rate code (0-7)."""
        self._update_control(0xFC7F, (refresh_rate & 0x07) << 7)

    def get_refresh_rate(self) -> int:
        """Return the refresh rate code currently in use."""
        return (self._read_word(CONTROL_REGISTER) & 0x0380) >> 7

    def set_interleaved_mode(self) -> None:
        """Switch to interleaved (row-by-row) subpages."""
        self._update_control(0xEFFF, 0)

    def set_chess_mode(self) -> None:
        """Switch to chess-pattern subpages."""
        self._update_control(0xFFFF, 0x1000)

    def get_mode(self) -> int:
        """Return 1 for chess mode, 0 for interleaved mode."""
        return (self._read_word(CONTROL_REGISTER) & 0x1000) >> 12