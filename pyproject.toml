[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dirlistener"
version = "0.1.0"
description = "Watch directories for file-system events and run shell commands according to JSON rules"
requires-python = ">=3.10"
keywords = ["filesystem", "watch", "monitor", "events", "daemon", "watchdog"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Environment :: No Input/Output (Daemon)",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
]
dependencies = [
    "watchdog",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
dirlistener = "dirlistener.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["dirlistener"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
