[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "chainindexer"
version = "5.0.0"
description = "Blockchain data indexer storing blocks, transactions and messages in PostgreSQL"
requires-python = ">=3.10"
keywords = ["blockchain", "indexer", "postgresql", "bech32", "pruning", "migration", "metrics"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database :: Front-Ends",
]
dependencies = [
    "pyyaml>=6.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
]

[project.scripts]
chainindexer = "chainindexer.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["chainindexer"]

[tool.hatch.build.targets.sdist]
include = ["chainindexer", "tests"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
