[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "linkhub"
version = "0.1.0"
description = "Connection registry, channel subscriptions and cluster publish routing for a long-lived connection gateway"
requires-python = ">=3.11"
dependencies = []
keywords = ["gateway", "pubsub", "channels", "connections", "cluster", "push"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Framework :: AsyncIO",
    "Topic :: Communications",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["linkhub"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
