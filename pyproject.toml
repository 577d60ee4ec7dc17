[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "firedrone"
version = "0.1.0"
description = "Flight software building blocks for a fire-fighting quadcopter: thermal camera calibration, attitude control, payload drop logic and a checksummed datalink."
requires-python = ">=3.10"
dependencies = []
keywords = ["drone", "quadcopter", "MLX90640", "thermal", "PID", "datalink", "fletcher"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Embedded Systems",
    "Topic :: Scientific/Engineering",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["firedrone"]

[tool.hatch.build.targets.sdist]
include = ["firedrone", "tests", "README.md", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
