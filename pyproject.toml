[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "barmancloud-plugin"
version = "0.1.0"
description = "Configuration, RBAC, sidecar injection and restore helpers for cloud object-store backups of PostgreSQL clusters"
requires-python = ">=3.10"
dependencies = []
keywords = ["postgresql", "backup", "restore", "barman", "object-store", "kubernetes", "rbac", "sidecar"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Archiving :: Backup",
    "Topic :: Database",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["barmancloud_plugin"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
