"""
Material data structures.
"""

import numpy as np
from dataclasses import dataclass, field


def _color(value) -> np.ndarray:
    return np.clip(np.array(value, dtype=np.float64).reshape(3), 0.0, 1.0)


@dataclass(eq=False)
class Material:
    """
    Flat-shaded material with ambient, diffuse and specular RGB colours.

    Materials are compared by identity: two materials with the same
    colours are still distinct resources.
    """
    name: str
    diffuse_color: np.ndarray = field(default_factory=lambda: np.ones(3))
    ambient_color: np.ndarray = field(default_factory=lambda: np.zeros(3))
    specular_color: np.ndarray = field(default_factory=lambda: np.ones(3))

    def __post_init__(self):
        self.diffuse_color = _color(self.diffuse_color)
        self.ambient_color = _color(self.ambient_color)
        self.specular_color = _color(self.specular_color)

    @classmethod
    def solid(cls, name: str, color) -> 'Material':
        """Material using ``color`` for every lighting term."""
        return cls(name=name, diffuse_color=color, ambient_color=color, specular_color=color)
