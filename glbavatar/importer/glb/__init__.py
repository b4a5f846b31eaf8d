"""
GLB/GLTF parsing module.
"""

from .parser import GLBParser, load_gltf_bytes
from .accessor import AccessorReader

__all__ = ['GLBParser', 'AccessorReader', 'load_gltf_bytes']
