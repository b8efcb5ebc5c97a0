[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "omc"
version = "2.0.1"
description = "Inspect OpenShift must-gather directories as if they were a live cluster"
requires-python = ">=3.10"
keywords = ["openshift", "kubernetes", "must-gather", "troubleshooting", "jsonpath"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
]
dependencies = [
    "pyyaml",
    "requests",
    "semver",
    "tqdm",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[tool.hatch.build.targets.wheel]
packages = ["omc"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
