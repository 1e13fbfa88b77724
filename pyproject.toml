[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "portwatch"
version = "0.1.0"
description = "Monitor TCP ports on hosts and report when ports open or close"
requires-python = ">=3.10"
keywords = ["ports", "monitoring", "tcp", "scanner", "alerting", "history"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking :: Monitoring",
]
dependencies = [
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
portwatch = "portwatch.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["portwatch"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
