"""
EcoBid auction lifecycle and settlement engine
"""
__version__ = "1.0.0"
