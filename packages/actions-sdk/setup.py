#!/usr/bin/env python3
"""
GitHub Actions SDK for Python
Setup script
"""

from setuptools import setup, find_packages

setup(
    name="gh-dashboard-actions-sdk",
    version="0.1.0",
    description="Read-only GitHub Actions API client used by gh-dashboard",
    packages=find_packages(),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.10",
    install_requires=[
        "requests>=2.25.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
        ],
    },
)
