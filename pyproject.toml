[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "slicedset"
version = "0.1.0"
description = "Compressed sorted integer sets split into chunks and blocks, with decode, select, next_geq, intersection and union"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "compression",
    "integer-sets",
    "inverted-index",
    "bitmap",
    "posting-lists",
    "intersection",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Archiving :: Compression",
    "Topic :: Text Processing :: Indexing",
]

[project.optional-dependencies]
test = ["pytest", "hypothesis"]

[project.scripts]
slicedset = "slicedset.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["slicedset"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
