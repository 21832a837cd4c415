"""Pipeline module for composing complete videos."""

from .compositor import CompositionResult, Compositor, Post, load_posts
from .workspace import Workspace

__all__ = [
    "CompositionResult",
    "Compositor",
    "Post",
    "Workspace",
    "load_posts",
]
