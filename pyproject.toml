[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "iqresample"
version = "0.1.0"
description = "Building blocks for an I/Q sample pipeline: format conversion, presets, frequency shifting, bounded work queues and threaded processing stages."
requires-python = ">=3.10"
dependencies = [
    "numpy",
]
keywords = ["sdr", "iq", "dsp", "radio", "sample-conversion", "frequency-shift"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Ham Radio",
    "Topic :: Scientific/Engineering",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["iqresample"]

[tool.pytest.ini_options]
addopts = "-ra"
