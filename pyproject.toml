[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dirstat"
version = "0.1.0"
description = "Directory statistics: a tree of files and folders with sizes totalled over each branch"
requires-python = ">=3.10"
dependencies = []
keywords = ["disk usage", "directory", "statistics", "filesystem"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Filesystems",
    "Topic :: Utilities",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["dirstat"]

[tool.pytest.ini_options]
addopts = "-ra"
