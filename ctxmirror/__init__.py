"""
ctxmirror: export, import and path conversion for Claude configuration trees.
"""

__version__ = "1.0.0"
