"""Rendering and pointer interaction for concept graphs."""

from .renderer import ConceptGraphRenderer, Scene, NodeGlyph, EdgeGlyph, highlight_set
from .interaction import InteractionController, InputEvent, PointerEvent
from .viewport import Viewport, ViewTransform, Tooltip

__all__ = [
    'ConceptGraphRenderer', 'Scene', 'NodeGlyph', 'EdgeGlyph', 'highlight_set',
    'InteractionController', 'InputEvent', 'PointerEvent',
    'Viewport', 'ViewTransform', 'Tooltip'
]
