"""
StoryTeller Meta
Generates and safely updates chapter ``.meta.ts`` modules from manuscripts.
"""

__version__ = "0.3.0"
