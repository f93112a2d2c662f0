[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "splitforest"
version = "0.1.0"
description = "Relabeling strategies, splitting rules and sampling for growing generalized random forest trees"
requires-python = ">=3.10"
keywords = ["random forest", "splitting rule", "survival analysis", "instrumental variables", "statistics"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Scientific/Engineering :: Mathematics",
]
dependencies = [
    "numpy",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["splitforest"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
