# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
Setup configuration for the MCP Hello World server
"""

from setuptools import setup, find_packages

setup(
    name="mcp-hello-server",
    version="1.0.0",
    description="Model Context Protocol demo server with stdio, Streaming HTTP and SSE transports",
    author="MCP Hello World Maintainers",
    packages=find_packages(include=["mcp_hello", "mcp_hello.*"]),
    python_requires=">=3.10",
    install_requires=[
        "fastapi>=0.110.0",
        "uvicorn>=0.29.0",
        "pydantic>=2.5.0",
        "pyyaml>=6.0",
        "python-dotenv>=1.0.0",
        "python-ulid>=2.2.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.23.0",
            "httpx>=0.27.0",
        ]
    },
    entry_points={
        "console_scripts": [
            "mcp-hello-server=mcp_hello.cli:main",
        ]
    },
)
