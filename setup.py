#!/usr/bin/env python3
"""
Setup file for parquet-scope
"""

from setuptools import setup, find_packages

setup(
    name="parquet-scope",
    version="0.1.0",
    description="Lazy metadata and page decoding engine for browsing Parquet files",
    author="",
    author_email="",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.11",
    install_requires=[
        "thrift",
        "pyarrow",
    ],
    extras_require={
        "dev": [
            "pytest",
            "coverage",
            "pandas",
        ],
    },
    entry_points={
        "console_scripts": [
            "parquet-scope=parquet_scope.cli:main",
        ],
    },
)
