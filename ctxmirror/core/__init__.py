"""
Core logic for mirroring Claude configuration trees.

UI-agnostic: nothing in this package depends on Qt.
"""
