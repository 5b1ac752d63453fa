#!/usr/bin/env python3
"""
Setup script for remotesplit
"""

from setuptools import setup, find_packages
import os


def read_long_description():
    """Read the README file if it exists"""
    readme_path = os.path.join(os.path.dirname(__file__), "README.md")
    if os.path.exists(readme_path):
        with open(readme_path, "r", encoding="utf-8") as fh:
            return fh.read()
    return "Split heavy Python dependencies into sibling services called over gRPC"


setup(
    name="remotesplit",
    version="0.3.0",
    description=(
        "Split an oversized Python application into a main unit plus sibling "
        "units hosting heavy dependencies, bridged by a transparent remote proxy"
    ),
    long_description=read_long_description(),
    long_description_content_type="text/markdown",
    packages=find_packages(where=".", include=["remotesplit", "remotesplit.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Build Tools",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.10",
    install_requires=[
        "grpcio>=1.50.0",
        "grpcio-health-checking>=1.50.0",
        "protobuf>=4.21.0",
        "cloudpickle>=2.2.0",
        "numpy>=1.21.0",
        "pyyaml>=6.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "remotesplit=remotesplit.cli:main",
        ],
    },
    zip_safe=False,
)
