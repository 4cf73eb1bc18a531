[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cronloom"
version = "0.1.0"
description = "Asyncio job scheduling core: in-memory job metadata and notification stores, broadcast channels, notification handling and a ticking scheduler."
requires-python = ">=3.10"
dependencies = []
keywords = ["cron", "scheduler", "asyncio", "jobs", "notifications"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Framework :: AsyncIO",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: Scheduling",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["cronloom"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
