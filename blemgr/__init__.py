"""
blemgr - BlueZ LE device discovery and GATT interaction over D-Bus
"""

__version__ = "1.0.0"
