"""
LayerBurn Sessions

Stateful front ends for editing layers and converting them.
"""

from .editor_session import EditorSession, EditorState
from .conversion_session import ConversionSession, ConversionState

__all__ = ['EditorSession', 'EditorState', 'ConversionSession', 'ConversionState']
