[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "nightorm"
version = "0.1.0"
description = "A small PostgreSQL ORM for dataclass models, with a parameterised SQL query builder"
requires-python = ">=3.10"
dependencies = []
keywords = ["orm", "postgresql", "sql", "query-builder", "dataclasses", "db-api"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database :: Front-Ends",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["nightorm"]

[tool.pytest.ini_options]
addopts = "-ra"
