[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "decompkit"
version = "0.1.0"
description = "A small decompiler that lifts disassembled instructions to a stack-based IL and prints C, Zig, Python or a compact expression form"
requires-python = ">=3.10"
dependencies = []
keywords = ["decompiler", "disassembler", "reverse-engineering", "intermediate-language", "control-flow"]
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
    "Topic :: Software Development :: Disassemblers",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["decompkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
