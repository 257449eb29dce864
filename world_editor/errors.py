"""
Exception types raised by the World Editor.
"""


class EditorError(Exception):
    """Base class for every error the editor raises."""


class ValidationError(EditorError):
    """An edit would break a model invariant; nothing was changed."""


class CatalogError(EditorError):
    """A catalog request failed; the model is left as it was."""


class WorldFormatError(EditorError):
    """A world document failed basic shape checks and was not imported."""
