"""
SysVital - System Health Analysis & Optimization Engine
"""
__version__ = "1.0.0"
