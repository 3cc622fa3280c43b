[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "brainlift"
version = "0.1.0"
description = "A Brainfuck interpreter and a compiler to x86-64 ELF object files"
requires-python = ">=3.10"
dependencies = []
keywords = ["brainfuck", "interpreter", "compiler", "esolang", "x86-64", "elf"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Interpreters",
    "Topic :: Software Development :: Compilers",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
brainlift = "brainlift.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["brainlift"]

[tool.pytest.ini_options]
addopts = "-ra"
