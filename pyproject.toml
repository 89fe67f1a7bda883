[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dnsvard"
version = "0.1.0"
description = "Building blocks for a local development DNS daemon: shell completion setup, self-heal coordination, diagnostics, route health checks, restart planning and change tracking"
requires-python = ">=3.10"
keywords = ["dns", "local-development", "resolver", "daemon", "shell-completion", "self-healing"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: Name Service (DNS)",
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Typing :: Typed",
]
dependencies = []

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["dnsvard"]

[tool.pytest.ini_options]
addopts = "-ra"
