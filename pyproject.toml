[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "termcast"
version = "0.1.0"
description = "Record, replay, concatenate, convert and upload terminal sessions in the asciicast format"
requires-python = ">=3.11"
dependencies = [
    "requests",
]
keywords = [
    "terminal",
    "recording",
    "asciicast",
    "pty",
    "replay",
    "screencast",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX",
    "Operating System :: MacOS",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Terminals",
    "Topic :: Multimedia :: Graphics :: Capture :: Screen Capture",
    "Topic :: Utilities",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[project.scripts]
termcast = "termcast.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["termcast"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
warn_redundant_casts = true
