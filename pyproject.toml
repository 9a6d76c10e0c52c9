[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "distpart"
version = "0.1.0"
description = "Building blocks for distributed multilevel graph partitioning: distributed CSR graphs, in-process message passing, communication setup, diffusion helpers and graph assembly."
requires-python = ">=3.10"
keywords = ["graph", "partitioning", "distributed", "csr", "diffusion", "multilevel"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Scientific/Engineering :: Mathematics",
]
dependencies = []

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["distpart"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
