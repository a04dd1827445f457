#!/usr/bin/env python3
"""
Setup script for chess-duel.

A tool for running matches between UCI chess engines and estimating their
rating by playing them against Stockfish at several skill levels.
"""

from pathlib import Path
from setuptools import setup, find_packages

# Read the contents of README file
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text(encoding='utf-8') if (this_directory / "README.md").exists() else ""

# Read version from package
version_file = this_directory / "chess_duel" / "__init__.py"
version = "0.3.0"  # Default version
if version_file.exists():
    with open(version_file, encoding='utf-8') as f:
        for line in f:
            if line.startswith('__version__'):
                version = line.split('=')[1].strip().strip('"').strip("'")
                break

setup(
    name="chess-duel",
    version=version,
    description="Run matches between UCI chess engines and estimate their strength",
    long_description=long_description,
    long_description_content_type="text/markdown",

    # Package discovery
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.11",

    # Dependencies
    install_requires=[
        "chess>=1.10.0",
        "rich>=13.0.0",
    ],

    # Optional dependencies
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "mypy>=1.0.0",
            "black>=23.0.0",
            "flake8>=6.0.0",
            "isort>=5.0.0",
        ],
    },

    # Entry points for CLI
    entry_points={
        "console_scripts": [
            "chess-duel=chess_duel.cli:main",
        ],
    },

    # Classifiers
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Games/Entertainment :: Board Games",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: POSIX",
        "Environment :: Console",
        "Framework :: AsyncIO",
    ],

    # Keywords
    keywords=[
        "chess",
        "uci",
        "engine",
        "match",
        "elo",
        "rating",
        "stockfish",
    ],

    zip_safe=False,

    # Test configuration
    test_suite="tests",
)
