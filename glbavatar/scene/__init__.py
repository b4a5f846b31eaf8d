"""
Minimal in-process scene model: nodes, meshes, materials and animations.
"""

from .animation import Animation, AnimationGroup, Keyframe, TargetedAnimation
from .builder import create_sphere
from .material import Material
from .node import Mesh, Node
from .scene import Scene

__all__ = [
    'Animation', 'AnimationGroup', 'Keyframe', 'TargetedAnimation',
    'create_sphere', 'Material', 'Mesh', 'Node', 'Scene',
]
