"""Subject ordering for class sections.

Drag-and-drop reordering of a two-level subject list with optimistic local
updates, debounced persistence and rollback on failure.
"""

__version__ = "1.0.0"
