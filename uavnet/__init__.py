"""
UAV network simulator: drone swarms under electronic warfare and malware attacks
"""

__version__ = "0.1.0"
