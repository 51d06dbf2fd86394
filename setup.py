#!/usr/bin/env python
from setuptools import setup, find_packages

setup(
    name="smart-node",
    version="0.1.0",
    description="LLM-powered source-to-JavaScript runtime with a translation cache",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    python_requires=">=3.10",
    install_requires=[
        # HTTP client for the chat completion endpoint
        "httpx>=0.27.0",

        # Settings and cache records
        "pydantic>=2.7.0",
        "pydantic-settings>=2.3.0",

        # Utilities
        "structlog>=24.1.0",
        "tenacity>=8.2.0",
    ],
    extras_require={
        "dev": [
            "pytest>=8.1.0",
            "pytest-asyncio>=0.24.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "smnode=smart_node.main:run",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
)
