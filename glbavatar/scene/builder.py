"""
Procedural mesh builders.
"""

import logging
import numpy as np
from typing import Optional

import trimesh

from .node import Mesh
from .scene import Scene

logger = logging.getLogger(__name__)

DEFAULT_SPHERE_SEGMENTS = 32


def create_sphere(
    name: str,
    diameter: float = 1.0,
    segments: int = DEFAULT_SPHERE_SEGMENTS,
    scene: Optional[Scene] = None,
) -> Mesh:
    """
    Create a UV sphere mesh centred on the origin.

    Args:
        name: Mesh name
        diameter: Sphere diameter
        segments: Number of latitude and longitude segments
        scene: Scene to register the mesh in

    Returns:
        New sphere mesh
    """
    sphere = trimesh.creation.uv_sphere(radius=diameter / 2.0, count=[segments, segments])

    mesh = Mesh(
        name,
        scene=scene,
        vertices=np.asarray(sphere.vertices),
        indices=np.asarray(sphere.faces).reshape(-1),
    )
    logger.debug(f"Created sphere {name!r} with {len(sphere.vertices)} vertices")
    return mesh
