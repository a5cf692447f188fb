"""
Recyclify real-time detection pipeline

Identifies objects in a live camera feed and tags each one as recyclable
or not, entirely on the viewing device.
"""

__version__ = "1.0.0"
__author__ = "Recyclify Project"
