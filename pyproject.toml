[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "conclave"
version = "0.1.0"
description = "Concurrency building blocks: channels, locks, latches, stacks, thread pools, atomics and shared-memory messaging"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "concurrency",
    "threads",
    "channel",
    "mutex",
    "latch",
    "spinlock",
    "thread-pool",
    "atomic",
    "shared-memory",
    "ipc",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Topic :: System :: Distributed Computing",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
conclave-atomics = "conclave.atomics:main"
conclave-futures = "conclave.futures:main"
conclave-producer = "conclave.ipc_cli:producer_main"
conclave-consumer = "conclave.ipc_cli:consumer_main"

[tool.hatch.build.targets.wheel]
packages = ["conclave"]

[tool.hatch.build.targets.sdist]
include = ["conclave", "tests", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
