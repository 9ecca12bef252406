# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
MCP Hello World server.

Demonstrates the Model Context Protocol with two tools, three resources and
two prompts, served over stdio, Streaming HTTP or Server-Sent Events.
"""

__version__ = "1.0.0"
