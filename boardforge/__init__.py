"""
BoardForge - embedded project manager

Pairs a main development board and its peripherals with a source
directory and drives the build tool against it.
"""

__version__ = "0.3.0"
