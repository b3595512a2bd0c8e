[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "agentverk"
version = "0.2.4"
description = "Helpers for QEMU VMs run for AI agents: a QMP client, provisioning step helpers, a system summary renderer and disk template bookkeeping"
requires-python = ">=3.11"
dependencies = [
    "tomli-w",
]
keywords = ["qemu", "vm", "qmp", "agent", "provisioning", "templates"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: MacOS",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Emulators",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["agentverk"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
