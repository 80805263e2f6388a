[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "nesppu"
version = "0.1.0"
description = "NES picture processing unit and work RAM emulation"
requires-python = ">=3.10"
dependencies = []
keywords = ["nes", "ppu", "emulator", "2c02", "famicom"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: System :: Emulators",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["nesppu"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
