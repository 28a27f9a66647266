#!/usr/bin/env python3
"""Setup script for the statement table reconstruction package."""

from setuptools import find_packages, setup

setup(
    name="statement-grid",
    version="0.1.0",
    description="Rebuild tables from positioned PDF glyphs and parse statement rows",
    packages=find_packages(include=["statement_grid", "statement_grid.*"]),
    python_requires=">=3.10",
    install_requires=[
        "pymupdf>=1.24",
        "numpy>=1.24",
        "numba>=0.58",
    ],
    extras_require={
        "test": ["pytest>=7"],
    },
    entry_points={
        "console_scripts": [
            "statement-grid=statement_grid.main:main",
        ],
    },
)
