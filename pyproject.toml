[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sbunix"
version = "0.1.0"
description = "A small x86-64 teaching kernel and its shell, modelled in Python: console, keyboard, descriptors, frames, paging, processes, ELF loading, tarfs and the sbush shell"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "kernel",
    "operating-system",
    "shell",
    "paging",
    "scheduler",
    "elf",
    "tarfs",
    "education",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Education",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Operating System Kernels",
    "Topic :: System :: Shells",
    "Topic :: Education",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
sbush = "sbunix.shell:main"
sbunix-hello = "sbunix.hello:main"
sbunix-newfs = "sbunix.newfs:main"

[tool.hatch.build.targets.wheel]
packages = ["sbunix"]

[tool.hatch.build.targets.sdist]
include = ["sbunix", "tests", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"
