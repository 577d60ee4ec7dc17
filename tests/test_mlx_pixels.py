import pytest

from firedrone.mlx_params import EEPROMError
from firedrone.mlx_pixels import (
    DeviatingPixelError,
    check_adjacent_pixels,
    extract_alpha,
    extract_kta,
    extract_kv,
    extract_offset,
    extract_parameters,
    find_deviating_pixels,
)


def make_ee(overrides=None, pixel=0x0002):
    data = [0] * 64 + [pixel] * 768
    for index, value in (overrides or {}).items():
        data[index] = value
    return data


@pytest.mark.parametrize(
    "pix1, pix2, expected",
    [
        (0, 0, True),
        (0, 1, True),
        (1, 0, True),
        (0, 2, False),
        (0, 31, True),
        (0, 32, True),
        (0, 33, True),
        (32, 0, True),
        (0, 30, False),
        (0, 34, False),
        (100, 500, False),
    ],
)
def test_check_adjacent_pixels(pix1, pix2, expected):
    assert check_adjacent_pixels(pix1, pix2) is expected


def test_clean_eeprom_has_no_deviating_pixels():
    assert find_deviating_pixels(make_ee()) == ((), ())


def test_single_broken_and_outlier():
    ee = make_ee({64 + 5: 0, 64 + 100: 0x0003})
    assert find_deviating_pixels(ee) == ((5,), (100,))


def test_too_many_broken():
    ee = make_ee({64 + p: 0 for p in (0, 100, 200, 300, 400)})
    with pytest.raises(DeviatingPixelError) as info:
        find_deviating_pixels(ee)
    assert info.value.code == -3
    assert info.value.broken == (0, 100, 200, 300, 400)


def test_too_many_outliers():
    ee = make_ee({64 + p: 0x0001 for p in (0, 100, 200, 300, 400)})
    with pytest.raises(DeviatingPixelError) as info:
        find_deviating_pixels(ee)
    assert info.value.code == -4


def test_too_many_deviating_in_total():
    overrides = {64 + p: 0 for p in (0, 100, 200)}
    overrides.update({64 + p: 0x0001 for p in (300, 400)})
    with pytest.raises(DeviatingPixelError) as info:
        find_deviating_pixels(make_ee(overrides))
    assert info.value.code == -5


def test_adjacent_broken_pixels():
    with pytest.raises(DeviatingPixelError) as info:
        find_deviating_pixels(make_ee({64 + 10: 0, 64 + 11: 0}))
    assert info.value.code == -6


def test_broken_adjacent_to_outlier():
    with pytest.raises(DeviatingPixelError) as info:
        find_deviating_pixels(make_ee({64 + 10: 0, 64 + 42: 0x0001}))
    assert info.value.code == -6


def test_alpha_reference_and_row():
    alpha = extract_alpha(make_ee({33: 0x4000, 34: 0x0001}))
    assert len(alpha) == 768
    assert alpha[0] * 2**30 == 0x4001
    assert alpha[31] * 2**30 == 0x4001
    assert alpha[32] * 2**30 == 0x4000


def test_alpha_column_scale():
    alpha = extract_alpha(make_ee({32: 0x0020, 33: 0x4000, 40: 0x000F}))
    assert alpha[0] * 2**30 == 0x4000 - (1 << 2)
    assert alpha[1] * 2**30 == 0x4000
    assert alpha[32] == alpha[0]


def test_alpha_pixel_remainder_scale():
    alpha = extract_alpha(make_ee({32: 0x0003, 33: 0x4000}, pixel=0x0010))
    assert all(value * 2**30 == 0x4000 + (1 << 3) for value in alpha)


def test_offset_reference_and_column():
    offset = extract_offset(make_ee({17: 0xFFFF, 24: 0x000F}))
    assert len(offset) == 768
    assert offset[0] == -1 - 1
    assert offset[1] == -1
    assert offset[32] == offset[0]


def test_offset_row_scale():
    offset = extract_offset(make_ee({16: 0x0200, 18: 0x0001}))
    assert offset[0] == 1 << 2
    assert offset[32] == 0


def test_kta_split_pattern():
    ee = make_ee({54: 0x0102, 55: 0x03FC}, pixel=0x0400)
    kta = extract_kta(ee)
    assert (kta[0] * 256, kta[1] * 256, kta[32] * 256, kta[33] * 256) == (1, 3, 2, -4)
    assert kta[64] == kta[0]


def test_kta_pixel_term():
    kta = extract_kta(make_ee({54: 0x0100, 56: 0x0002}, pixel=0x000E))
    assert kta[0] * 256 == 1 - (1 << 2)


def test_kv_split_pattern():
    kv = extract_kv(make_ee({52: 0x1234}))
    assert (kv[0], kv[1], kv[32], kv[33], kv[64]) == (1, 3, 2, 4, 1)


def test_kv_scale():
    kv = extract_kv(make_ee({52: 0xF000, 56: 0x0200}))
    assert kv[0] * 4 == -1


def test_extract_parameters_clean():
    params = extract_parameters(make_ee({48: 0x1234, 51: 0x0000}))
    assert params.gain_ee == 0x1234
    assert params.vdd25 == -16384
    assert len(params.alpha) == len(params.offset) == len(params.kta) == len(params.kv) == 768
    assert params.broken_pixels == ()
    assert params.outlier_pixels == ()


def test_extract_parameters_records_deviating_pixels():
    params = extract_parameters(make_ee({64 + 5: 0, 64 + 100: 0x0003}))
    assert params.broken_pixels == (5,)
    assert params.outlier_pixels == (100,)


def test_extract_parameters_invalid_eeprom():
    with pytest.raises(EEPROMError):
        extract_parameters(make_ee({10: 0x0040}))


def test_extract_parameters_error_carries_params():
    ee = make_ee({48: 0x0042, **{64 + p: 0 for p in (0, 100, 200, 300, 400)}})
    with pytest.raises(DeviatingPixelError) as info:
        extract_parameters(ee)
    assert info.value.code == -3
    assert info.value.params.gain_ee == 0x0042
    assert info.value.params.broken_pixels == (0, 100, 200, 300, 400)


def test_extract_parameters_short_dump():
    with pytest.raises(ValueError):
        extract_parameters([0] * 100)