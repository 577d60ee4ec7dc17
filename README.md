# firedrone

Pure-Python building blocks for the flight software of a small fire-fighting
quadcopter. The drone carries an MLX90640 thermal camera. The camera looks for
a fire, and the drone drops a payload on it. Every piece of the package either
works on plain data or reaches the outside world through a small interface that
you supply.

## Contents

| Module | Purpose |
| --- | --- |
| `firedrone.mlx_params` | Decodes the scalar calibration constants from an 832-word MLX90640 EEPROM dump (`CalibrationParams`, `check_eeprom_valid`, `extract_vdd`, `extract_ptat`, `extract_gain`, `extract_tgc`, `extract_resolution`, `extract_ks_ta`, `extract_ks_to`, `extract_cp`, `extract_cilc`). |
| `firedrone.mlx_pixels` | Decodes the per-pixel alpha, offset, Kta and Kv values, finds broken and outlier pixels (`find_deviating_pixels`, `check_adjacent_pixels`), and builds the full calibration set with `extract_parameters`. |
| `firedrone.mlx_frame` | Turns a raw 834-word frame into supply voltage (`get_vdd`), ambient temperature (`get_ta`), object temperatures (`calculate_to`) or a normalised IR image (`get_image`). |
| `firedrone.mlx_device` | Drives the sensor through any object that implements the `I2CBus` protocol (`MLX90640`). |
| `firedrone.matrix` | Dense-matrix helpers on lists of rows: `multiply`, `multiply_transposed`, `transposed_multiply`, `transpose`, LU-based `invert`, `cross`, `normalize`, `format_matrix` and Householder `qr_transpose`. |
| `firedrone.controller` | A cascaded angle/rate PID attitude controller (`AttitudeController`, `ControllerGains`, `ControlOutput`) and `wrap_angle`. |
| `firedrone.navstate` | Data containers for the navigation output (`NavOutput`), the filter state (`KalmanState`), IMU samples (`PozyxData`) and motion-capture samples (`MoCapData`). |
| `firedrone.payload` | Rotates a body-frame fire offset into the local frame (`body_to_global`), decides when to open the payload servo (`PayloadDropper`), and runs fixed-interval task timers (`IntervalTimer`). |
| `firedrone.datalink_frame` | The Fletcher-32 checksum (`fletcher_checksum`), message header packing (`Header`), message encoding (`encode_message`) and a resynchronising frame scanner (`iter_frames`, `FrameStats`). |
| `firedrone.datalink` | Typed datalink messages (`OptitrackMessage`, `PidMessage`, `MessageId`), encoders for outgoing state (`encode_m0`, `encode_drone_state`), `quat_to_euler`, and a `DatalinkReader` that applies received messages. |

## Installing

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Example: temperatures from a thermal frame

```python
from firedrone.mlx_device import MLX90640
from firedrone.mlx_pixels import extract_parameters
from firedrone.mlx_frame import calculate_to

camera = MLX90640(bus, 0x33, 32)   # bus implements firedrone.mlx_device.I2CBus
params = extract_parameters(camera.dump_ee())
frame = camera.get_frame_data()
temperatures = calculate_to(frame, params, 0.95, 23.0)   # {pixel index: degrees C}
```

Each frame holds one sub-page, and `calculate_to` returns the pixels of that
sub-page only. Read two frames to cover the whole 32 × 24 image.

## Example: one control step

```python
from firedrone.controller import AttitudeController

controller = AttitudeController()
out = controller.update(0.01, (0.0, 0.0, 0.0), (0.0, 0.0, 0.0),
                        0.0, 0.1, 0.0, 0.0, True, False)
roll_moment, pitch_moment, yaw_moment = out.delm
```

A kill resets the integrators and returns `delf == -1`. The manual law commands
moments only, so its `delf` is always zero.

## Example: payload release

```python
from firedrone.payload import PayloadDropper, ServoCommand

dropper = PayloadDropper()
decision = dropper.update(True, (0.05, 0.0), 0.0, (1.0, 2.0), now_ms=1000)
if decision.servo is ServoCommand.OPEN:
    ...
```

## Example: datalink

```python
from firedrone.datalink_frame import encode_message, iter_frames, FrameStats
from firedrone.datalink import DatalinkReader

packet = encode_message(42, b"payload bytes")
stats = FrameStats()
for header, payload in iter_frames(packet, stats):
    print(header.message_id, payload)

reader = DatalinkReader(controller=controller)
handled_ids = reader.feed(received_bytes)   # updates reader.mocap and controller gains
```

Every failure that the sensor or the EEPROM data can report is raised as an
exception: `EEPROMError`, `DeviatingPixelError` or `MLX90640Error`, each with a
numeric `code`.

## What the package does not do

- It holds no hardware drivers. The I2C bus, the UDP socket, the motor ESCs and
  the payload servo are left to you. `MLX90640` needs an `I2CBus` object, the
  datalink works on bytes, and `PayloadDropper` only returns a `ServoCommand`.
- It does not map stick input, decode the arm and mode switches, or mix
  controller commands into motor PWM values.
- It has no flight main loop and no command-line program. `IntervalTimer` is
  there for you to schedule your own tasks.
- `firedrone.navstate` holds the navigation filter's state and output, but the
  package contains no filter that updates them.