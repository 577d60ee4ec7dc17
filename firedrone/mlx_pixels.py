"""Per-pixel MLX90640 calibration and the full parameter extraction."""

from __future__ import annotations

from dataclasses import replace
from itertools import chain, combinations, product

from firedrone.mlx_params import (
    EEPROM_WORDS,
    PIXEL_COUNT,
    CalibrationParams,
    check_eeprom_valid,
    extract_cilc,
    extract_cp,
    extract_gain,
    extract_ks_ta,
    extract_ks_to,
    extract_ptat,
    extract_resolution,
    extract_tgc,
    extract_vdd,
)

_ROWS = 24
_COLUMNS = 32
_PIXEL_BASE = 64
_MAX_DEVIATING = 4


class DeviatingPixelError(ValueError):
    """Raised when broken or outlier pixels make the sensor unusable.

    ``code`` is -3 (too many broken), -4 (too many outliers),
    -5 (too many deviating in total) or -6 (two deviating pixels adjacent).
    """

    def __init__(self, code: int, message: str, broken=(), outlier=()):
        super().__init__(message)
        self.code = code
        self.broken = tuple(broken)
        self.outlier = tuple(outlier)
        self.params: CalibrationParams | None = None


def _signed(value: int, bits: int) -> int:
    value &= (1 << bits) - 1
    if value >= 1 << (bits - 1):
        value -= 1 << bits
    return value


def _nibbles(words):
    """Yield the four signed nibbles of each word, lowest first."""
    for word in words:
        for shift in (0, 4, 8, 12):
            yield _signed((word >> shift) & 0xF, 4)


def _pixel_words(ee_data):
    return ee_data[_PIXEL_BASE:_PIXEL_BASE + PIXEL_COUNT]


def _split(pixel: int) -> int:
    return 2 * ((pixel // _COLUMNS) % 2) + pixel % 2


def extract_alpha(ee_data) -> tuple[float, ...]:
    """Return the sensitivity of every pixel."""
    header = ee_data[32]
    rem_scale = header & 0x000F
    column_scale = (header & 0x00F0) >> 4
    row_scale = (header & 0x0F00) >> 8
    alpha_scale = ((header & 0xF000) >> 12) + 30
    alpha_ref = ee_data[33]

    acc_row = list(_nibbles(ee_data[34:40]))
    acc_column = list(_nibbles(ee_data[40:48]))
    divisor = 2**alpha_scale

    result = []
    for pixel, word in enumerate(_pixel_words(ee_data)):
        row, column = divmod(pixel, _COLUMNS)
        own = _signed((word & 0x03F0) >> 4, 6) * (1 << rem_scale)
        total = (
            alpha_ref
            + (acc_row[row] << row_scale)
            + (acc_column[column] << column_scale)
            + own
        )
        result.append(total / divisor)
    return tuple(result)


def extract_offset(ee_data) -> tuple[int, ...]:
    """Return the offset of every pixel."""
    header = ee_data[16]
    rem_scale = header & 0x000F
    column_scale = (header & 0x00F0) >> 4
    row_scale = (header & 0x0F00) >> 8
    offset_ref = _signed(ee_data[17], 16)

    occ_row = list(_nibbles(ee_data[18:24]))
    occ_column = list(_nibbles(ee_data[24:32]))

    result = []
    for pixel, word in enumerate(_pixel_words(ee_data)):
        row, column = divmod(pixel, _COLUMNS)
        own = _signed((word & 0xFC00) >> 10, 6) * (1 << rem_scale)
        result.append(
            offset_ref
            + (occ_row[row] << row_scale)
            + (occ_column[column] << column_scale)
            + own
        )
    return tuple(result)


def extract_kta(ee_data) -> tuple[float, ...]:
    """Return the Kta coefficient of every pixel."""
    kta_rc = (
        _signed((ee_data[54] & 0xFF00) >> 8, 8),
        _signed((ee_data[55] & 0xFF00) >> 8, 8),
        _signed(ee_data[54] & 0x00FF, 8),
        _signed(ee_data[55] & 0x00FF, 8),
    )
    scale1 = ((ee_data[56] & 0x00F0) >> 4) + 8
    scale2 = ee_data[56] & 0x000F
    divisor = 2**scale1

    return tuple(
        (kta_rc[_split(pixel)] + _signed((word & 0x000E) >> 1, 3) * (1 << scale2))
        / divisor
        for pixel, word in enumerate(_pixel_words(ee_data))
    )


def extract_kv(ee_data) -> tuple[float, ...]:
    """Return the Kv coefficient of every pixel."""
    word = ee_data[52]
    kv_t = (
        _signed((word & 0xF000) >> 12, 4),
        _signed((word & 0x00F0) >> 4, 4),
        _signed((word & 0x0F00) >> 8, 4),
        _signed(word & 0x000F, 4),
    )
    divisor = 2 ** ((ee_data[56] & 0x0F00) >> 8)
    return tuple(kv_t[_split(pixel)] / divisor for pixel in range(PIXEL_COUNT))


def check_adjacent_pixels(pix1: int, pix2: int) -> bool:
    """Return True if the two pixels are the same or neighbours."""
    difference = pix1 - pix2
    return -34 < difference < -30 or -2 < difference < 2 or 30 < difference < 34


def find_deviating_pixels(ee_data) -> tuple[tuple[int, ...], tuple[int, ...]]:
    """Return ``(broken, outlier)`` pixel indices or raise DeviatingPixelError."""
    broken: list[int] = []
    outlier: list[int] = []
    for pixel, word in enumerate(_pixel_words(ee_data)):
        if len(broken) > _MAX_DEVIATING or len(outlier) > _MAX_DEVIATING:
            break
        if word == 0:
            broken.append(pixel)
        elif word & 0x0001:
            outlier.append(pixel)

    if len(broken) > _MAX_DEVIATING:
        raise DeviatingPixelError(-3, "too many broken pixels", broken, outlier)
    if len(outlier) > _MAX_DEVIATING:
        raise DeviatingPixelError(-4, "too many outlier pixels", broken, outlier)
    if len(broken) + len(outlier) > _MAX_DEVIATING:
        raise DeviatingPixelError(-5, "too many deviating pixels", broken, outlier)

    pairs = chain(combinations(broken, 2), combinations(outlier, 2), product(broken, outlier))
    for first, second in pairs:
        if check_adjacent_pixels(first, second):
            raise DeviatingPixelError(
                -6, f"deviating pixels {first} and {second} are adjacent", broken, outlier
            )
    return tuple(broken), tuple(outlier)


def extract_parameters(ee_data) -> CalibrationParams:
    """Decode a full EEPROM dump into calibration parameters.

    A DeviatingPixelError raised here carries the decoded parameters in ``params``.
    """
    if len(ee_data) < EEPROM_WORDS:
        raise ValueError(f"EEPROM dump needs {EEPROM_WORDS} words, got {len(ee_data)}")
    check_eeprom_valid(ee_data)

    k_vdd, vdd25 = extract_vdd(ee_data)
    kv_ptat, kt_ptat, v_ptat25, alpha_ptat = extract_ptat(ee_data)
    ks_to, ct = extract_ks_to(ee_data)
    cp_alpha, cp_offset, cp_kta, cp_kv = extract_cp(ee_data)
    calibration_mode_ee, il_chess_c = extract_cilc(ee_data)

    params = CalibrationParams(
        k_vdd=k_vdd,
        vdd25=vdd25,
        kv_ptat=kv_ptat,
        kt_ptat=kt_ptat,
        v_ptat25=v_ptat25,
        alpha_ptat=alpha_ptat,
        gain_ee=extract_gain(ee_data),
        tgc=extract_tgc(ee_data),
        resolution_ee=extract_resolution(ee_data),
        ks_ta=extract_ks_ta(ee_data),
        ks_to=ks_to,
        ct=ct,
        alpha=extract_alpha(ee_data),
        offset=extract_offset(ee_data),
        kta=extract_kta(ee_data),
        kv=extract_kv(ee_data),
        cp_alpha=cp_alpha,
        cp_offset=cp_offset,
        cp_kta=cp_kta,
        cp_kv=cp_kv,
        calibration_mode_ee=calibration_mode_ee,
        il_chess_c=il_chess_c,
    )

    try:
        broken, outlier = find_deviating_pixels(ee_data)
    except DeviatingPixelError as error:
        error.params = replace(params, broken_pixels=error.broken, outlier_pixels=error.outlier)
        raise
    return replace(params, broken_pixels=broken, outlier_pixels=outlier)