"""Scalar calibration constants stored in the MLX90640 EEPROM."""

from __future__ import annotations

from dataclasses import dataclass

EEPROM_WORDS = 832
PIXEL_COUNT = 768


class EEPROMError(ValueError):
    """Raised when the EEPROM dump does not belong to a usable device."""

    code = -7


def _signed(value: int, bits: int) -> int:
    """Interpret the low ``bits`` of ``value`` as a two's complement number."""
    value &= (1 << bits) - 1
    if value >= 1 << (bits - 1):
        value -= 1 << bits
    return value


@dataclass(frozen=True)
class CalibrationParams:
    """Every calibration constant needed to turn a frame into temperatures."""

    k_vdd: int
    vdd25: int
    kv_ptat: float
    kt_ptat: float
    v_ptat25: int
    alpha_ptat: float
    gain_ee: int
    tgc: float
    resolution_ee: int
    ks_ta: float
    ks_to: tuple[float, ...]
    ct: tuple[int, ...]
    alpha: tuple[float, ...]
    offset: tuple[int, ...]
    kta: tuple[float, ...]
    kv: tuple[float, ...]
    cp_alpha: tuple[float, float]
    cp_offset: tuple[int, int]
    cp_kta: float
    cp_kv: float
    calibration_mode_ee: int
    il_chess_c: tuple[float, float, float]
    broken_pixels: tuple[int, ...] = ()
    outlier_pixels: tuple[int, ...] = ()


def check_eeprom_valid(ee_data) -> None:
    """Raise EEPROMError if the device-select bit of word 10 is set."""
    if ee_data[10] & 0x0040:
        raise EEPROMError("EEPROM device-select bit is set; data is not valid")


def extract_vdd(ee_data) -> tuple[int, int]:
    """Return ``(k_vdd, vdd25)``."""
    word = ee_data[51]
    k_vdd = 32 * _signed((word & 0xFF00) >> 8, 8)
    vdd25 = (((word & 0x00FF) - 256) << 5) - 8192
    return k_vdd, vdd25


def extract_ptat(ee_data) -> tuple[float, float, int, float]:
    """Return ``(kv_ptat, kt_ptat, v_ptat25, alpha_ptat)``."""
    word = ee_data[50]
    kv_ptat = _signed((word & 0xFC00) >> 10, 6) / 4096
    kt_ptat = _signed(word & 0x03FF, 10) / 8
    v_ptat25 = _signed(ee_data[49], 16)
    alpha_ptat = (ee_data[16] & 0xF000) / 2**14 + 8.0
    return kv_ptat, kt_ptat, v_ptat25, alpha_ptat


def extract_gain(ee_data) -> int:
    """Return the signed gain reference."""
    return _signed(ee_data[48], 16)


def extract_tgc(ee_data) -> float:
    """Return the thermal gradient coefficient."""
    return _signed(ee_data[60] & 0x00FF, 8) / 32.0


def extract_resolution(ee_data) -> int:
    """Return the ADC resolution used during calibration."""
    return (ee_data[56] & 0x3000) >> 12


def extract_ks_ta(ee_data) -> float:
    """Return the KsTa sensitivity coefficient."""
    return _signed((ee_data[60] & 0xFF00) >> 8, 8) / 8192.0


def extract_ks_to(ee_data) -> tuple[tuple[float, ...], tuple[int, ...]]:
    """Return ``(ks_to, ct)``: four KsTo coefficients and corner temperatures."""
    word = ee_data[63]
    step = ((word & 0x3000) >> 12) * 10
    ct2 = ((word & 0x00F0) >> 4) * step
    ct3 = ct2 + ((word & 0x0F00) >> 8) * step
    ct = (-40, 0, ct2, ct3)

    scale = 1 << ((word & 0x000F) + 8)
    raw = (
        ee_data[61] & 0x00FF,
        (ee_data[61] & 0xFF00) >> 8,
        ee_data[62] & 0x00FF,
        (ee_data[62] & 0xFF00) >> 8,
    )
    ks_to = tuple(_signed(value, 8) / scale for value in raw)
    return ks_to, ct


def extract_cp(ee_data) -> tuple[tuple[float, float], tuple[int, int], float, float]:
    """Return ``(cp_alpha, cp_offset, cp_kta, cp_kv)`` for the compensation pixels."""
    alpha_scale = ((ee_data[32] & 0xF000) >> 12) + 27

    offset0 = _signed(ee_data[58] & 0x03FF, 10)
    offset1 = _signed((ee_data[58] & 0xFC00) >> 10, 6) + offset0

    alpha0 = _signed(ee_data[57] & 0x03FF, 10) / 2**alpha_scale
    alpha1 = (1 + _signed((ee_data[57] & 0xFC00) >> 10, 6) / 128) * alpha0

    kta_scale1 = ((ee_data[56] & 0x00F0) >> 4) + 8
    cp_kta = _signed(ee_data[59] & 0x00FF, 8) / 2**kta_scale1

    kv_scale = (ee_data[56] & 0x0F00) >> 8
    cp_kv = _signed((ee_data[59] & 0xFF00) >> 8, 8) / 2**kv_scale

    return (alpha0, alpha1), (offset0, offset1), cp_kta, cp_kv


def extract_cilc(ee_data) -> tuple[int, tuple[float, float, float]]:
    """Return ``(calibration_mode_ee, il_chess_c)``."""
    calibration_mode_ee = ((ee_data[10] & 0x0800) >> 4) ^ 0x80
    word = ee_data[53]
    il_chess_c = (
        _signed(word & 0x003F, 6) / 16.0,
        _signed((word & 0x07C0) >> 6, 5) / 2.0,
        _signed((word & 0xF800) >> 11, 5) / 8.0,
    )
    return calibration_mode_ee, il_chess_c