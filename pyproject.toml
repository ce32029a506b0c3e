[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "fshistory"
version = "0.1.0"
description = "DOS services, MZ/COM loading, a file-image filesystem and an 8086 disassembler for running early flight simulator releases."
requires-python = ">=3.10"
dependencies = []
keywords = ["dos", "emulator", "8086", "x86", "disassembler", "mz", "retro"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Emulators",
    "Topic :: Software Development :: Disassemblers",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["fshistory"]

[tool.hatch.build.targets.sdist]
include = ["fshistory", "tests"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
