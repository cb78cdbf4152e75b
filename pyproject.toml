[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mipssim"
version = "0.1.0"
description = "Cycle-level building blocks for simulating a MIPS subset: single-cycle and pipelined cores, a two-level cache and out-of-order structures"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "mips",
    "simulator",
    "emulator",
    "pipeline",
    "out-of-order",
    "cache",
    "branch-prediction",
    "computer-architecture",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Education",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Emulators",
    "Topic :: Education",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["mipssim"]

[tool.hatch.build.targets.sdist]
include = ["mipssim", "tests", "pyproject.toml"]

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
