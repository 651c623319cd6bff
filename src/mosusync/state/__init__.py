"""State/store layer.

Typed state slices, the reactive store primitives they live in, and the
derived views computed from them.
"""
