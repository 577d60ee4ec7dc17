"""Turn raw MLX90640 frames into supply voltage, ambient and object temperatures."""

from __future__ import annotations

import math
from collections.abc import Iterator, Sequence

from firedrone.mlx_params import PIXEL_COUNT, CalibrationParams

FRAME_WORDS = 834
_ROW_WIDTH = 32
_KELVIN = 273.15
_VDD_NOMINAL = 3.3
_TA_REFERENCE = 25


def _signed16(value: int) -> int:
    return value - 0x10000 if value > 0x7FFF else value


def _check_frame(frame: Sequence[int]) -> None:
    if len(frame) < FRAME_WORDS:
        raise ValueError(f"frame needs {FRAME_WORDS} words, got {len(frame)}")


def _root4(value: float) -> float:
    """Fourth root that yields NaN for negative input instead of raising."""
    return math.sqrt(math.sqrt(value)) if value >= 0 else math.nan


def get_vdd(frame: Sequence[int], params: CalibrationParams) -> float:
    """Return the supply voltage measured during the frame."""
    _check_frame(frame)
    raw = _signed16(frame[810])
    resolution_ram = (frame[832] & 0x0C00) >> 10
    correction = 2.0**params.resolution_ee / 2.0**resolution_ram
    return (correction * raw - params.vdd25) / params.k_vdd + _VDD_NOMINAL


def get_ta(frame: Sequence[int], params: CalibrationParams) -> float:
    """Return the ambient (die) temperature in degrees Celsius."""
    vdd = get_vdd(frame, params)
    ptat = _signed16(frame[800])
    ptat_art = _signed16(frame[768])
    ptat_art = (ptat / (ptat * params.alpha_ptat + ptat_art)) * 2.0**18
    ta = ptat_art / (1 + params.kv_ptat * (vdd - _VDD_NOMINAL)) - params.v_ptat25
    return ta / params.kt_ptat + _TA_REFERENCE


def get_subpage_number(frame: Sequence[int]) -> int:
    """Return the subpage (0 or 1) the frame was measured on."""
    _check_frame(frame)
    return frame[833]


def _compensated_pixels(
    frame: Sequence[int], params: CalibrationParams, emissivity: float
) -> Iterator[tuple[int, float, float]]:
    """Yield ``(pixel, ir_data, alpha_compensated)`` for the frame's subpage."""
    subpage = get_subpage_number(frame)
    vdd = get_vdd(frame, params)
    ta = get_ta(frame, params)
    ta_factor = ta - _TA_REFERENCE
    vdd_factor = vdd - _VDD_NOMINAL

    gain = params.gain_ee / _signed16(frame[778])
    mode = (frame[832] & 0x1000) >> 5
    mode_matches = mode == params.calibration_mode_ee
    chess_c0, chess_c1, chess_c2 = params.il_chess_c

    cp_scale = (1 + params.cp_kta * ta_factor) * (1 + params.cp_kv * vdd_factor)
    cp0 = _signed16(frame[776]) * gain - params.cp_offset[0] * cp_scale
    cp1_offset = params.cp_offset[1] if mode_matches else params.cp_offset[1] + chess_c0
    cp1 = _signed16(frame[808]) * gain - cp1_offset * cp_scale
    ir_cp = (cp0, cp1)[subpage]
    cp_alpha = params.cp_alpha[subpage]
    ks_ta_scale = 1 + params.ks_ta * ta_factor

    for pixel in range(PIXEL_COUNT):
        il_pattern = (pixel // _ROW_WIDTH) % 2
        chess_pattern = il_pattern ^ (pixel % 2)
        pattern = il_pattern if mode == 0 else chess_pattern
        if pattern != subpage:
            continue

        conversion_pattern = (
            (pixel + 2) // 4 - (pixel + 3) // 4 + (pixel + 1) // 4 - pixel // 4
        ) * (1 - 2 * il_pattern)

        ir_data = _signed16(frame[pixel]) * gain
        ir_data -= (
            params.offset[pixel]
            * (1 + params.kta[pixel] * ta_factor)
            * (1 + params.kv[pixel] * vdd_factor)
        )
        if not mode_matches:
            ir_data += chess_c2 * (2 * il_pattern - 1) - chess_c1 * conversion_pattern

        ir_data /= emissivity
        ir_data -= params.tgc * ir_cp

        alpha = (params.alpha[pixel] - params.tgc * cp_alpha) * ks_ta_scale
        yield pixel, ir_data, alpha


def _temperature_range(to: float, ct: Sequence[int]) -> int:
    if to < ct[1]:
        return 0
    if to < ct[2]:
        return 1
    if to < ct[3]:
        return 2
    return 3


def calculate_to(
    frame: Sequence[int], params: CalibrationParams, emissivity: float, tr: float
) -> dict[int, float]:
    """Return object temperatures (Celsius) for the pixels of the frame's subpage.

    ``tr`` is the reflected temperature; the result maps pixel index to value.
    """
    ta = get_ta(frame, params)
    ta4 = (ta + _KELVIN) ** 4
    tr4 = (tr + _KELVIN) ** 4
    ta_tr = tr4 - (tr4 - ta4) / emissivity

    ks_to = params.ks_to
    ct = params.ct
    corr2 = 1 + ks_to[2] * ct[2]
    alpha_corr = (
        1 / (1 + ks_to[0] * 40),
        1.0,
        corr2,
        corr2 * (1 + ks_to[3] * (ct[3] - ct[2])),
    )

    result: dict[int, float] = {}
    for pixel, ir_data, alpha in _compensated_pixels(frame, params, emissivity):
        sx = _root4(alpha**3 * (ir_data + alpha * ta_tr)) * ks_to[1]
        to = _root4(ir_data / (alpha * (1 - ks_to[1] * _KELVIN) + sx) + ta_tr) - _KELVIN
        band = _temperature_range(to, ct)
        to = (
            _root4(
                ir_data / (alpha * alpha_corr[band] * (1 + ks_to[band] * (to - ct[band])))
                + ta_tr
            )
            - _KELVIN
        )
        result[pixel] = to
    return result


def get_image(frame: Sequence[int], params: CalibrationParams) -> dict[int, float]:
    """Return the compensated IR signal divided by sensitivity for the subpage pixels."""
    return {
        pixel: ir_data / alpha
        for pixel, ir_data, alpha in _compensated_pixels(frame, params, 1.0)
    }