[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sesmailbox"
version = "0.1.0"
description = "Mailbox operations over a key-value email table and an SES-style sending service"
requires-python = ">=3.10"
dependencies = []
keywords = ["email", "mailbox", "ses", "dynamodb", "drafts", "pagination"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Email",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["sesmailbox"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
