"""Setup script for the gh-dashboard package."""

from setuptools import find_packages, setup

setup(
    name="gh-dashboard",
    version="0.1.0",
    description="Live terminal dashboard of GitHub Actions workflow runs",
    packages=find_packages(include=["ghdash", "ghdash.*"]) + ["actions_sdk"],
    # The Actions SDK lives in its own package directory, like a separate
    # distribution, but is installed alongside the dashboard.
    package_dir={"actions_sdk": "packages/actions-sdk/actions_sdk"},
    python_requires=">=3.10",
    install_requires=[
        "pyyaml>=6.0",
        "requests>=2.25.0",
        "rich>=13.0",
        "textual>=0.47.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "pytest-asyncio>=0.21",
        ],
    },
    entry_points={
        "console_scripts": [
            "gh-dashboard=ghdash.cli:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Environment :: Console",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
