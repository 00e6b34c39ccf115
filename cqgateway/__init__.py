"""
cqgateway - HTTP and MCP gateway for the cq Cardano transaction decoder
"""

__version__ = "0.1.0"
__logo__ = "◈"
