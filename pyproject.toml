[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "healthmon"
version = "0.1.0"
description = "Business telemetry decoding, ECSM API data models and metric state tracking for health monitoring"
requires-python = ">=3.10"
dependencies = []
keywords = ["monitoring", "health", "telemetry", "metrics", "alerting", "ecsm"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[tool.hatch.build.targets.wheel]
packages = ["healthmon"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
