"""Step library and assertion primitives."""
