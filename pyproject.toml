[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "alphaos"
version = "0.1.0"
description = "A small 32-bit hobby kernel modelled in pure Python: heap, paging, FAT16, processes, tasks and system calls"
requires-python = ">=3.10"
dependencies = []
keywords = ["kernel", "operating-system", "fat16", "paging", "heap", "gdt", "education"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Operating System Kernels",
    "Topic :: Education",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
alphaos = "alphaos.kernel:main"

[tool.hatch.build.targets.wheel]
packages = ["alphaos"]

[tool.pytest.ini_options]
addopts = "-ra"
