"""
Scene graph nodes and meshes.
"""

import logging
import numpy as np
from typing import List, Optional, Tuple, Iterator, TYPE_CHECKING

from ..common import (
    IDENTITY_QUATERNION,
    as_vector3,
    as_quaternion,
    compose_matrix,
    transform_points,
)

if TYPE_CHECKING:
    from .material import Material
    from .scene import Scene

logger = logging.getLogger(__name__)


class Node:
    """
    A transform node in the scene graph.

    Holds a local TRS transform. ``rotation_quaternion`` may be ``None``
    for nodes that were never given an explicit rotation.
    """

    def __init__(self, name: str, scene: Optional['Scene'] = None):
        self.name = name
        self.id = name
        self.parent: Optional['Node'] = None
        self._children: List['Node'] = []

        self._position = np.zeros(3)
        self._rotation_quaternion: Optional[np.ndarray] = None
        self._scaling = np.ones(3)

        self.is_disposed = False
        self._scene = scene
        if scene is not None:
            scene.add_node(self)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, id={self.id!r})"

    @property
    def scene(self) -> Optional['Scene']:
        return self._scene

    @property
    def position(self) -> np.ndarray:
        return self._position

    @position.setter
    def position(self, value):
        self._position = as_vector3(value)

    @property
    def rotation_quaternion(self) -> Optional[np.ndarray]:
        return self._rotation_quaternion

    @rotation_quaternion.setter
    def rotation_quaternion(self, value):
        self._rotation_quaternion = None if value is None else as_quaternion(value)

    @property
    def scaling(self) -> np.ndarray:
        return self._scaling

    @scaling.setter
    def scaling(self, value):
        self._scaling = as_vector3(value)

    def set_parent(self, parent: Optional['Node']) -> None:
        """Re-parent this node, detaching it from any previous parent."""
        if self.parent is parent:
            return
        if self.parent is not None:
            self.parent._children.remove(self)
        self.parent = parent
        if parent is not None:
            parent._children.append(self)

    def get_children(self) -> List['Node']:
        """Direct children, in insertion order."""
        return list(self._children)

    def iter_descendants(self) -> Iterator['Node']:
        """Depth-first iteration over every node below this one."""
        for child in self._children:
            yield child
            yield from child.iter_descendants()

    def compute_local_matrix(self) -> np.ndarray:
        rotation = self._rotation_quaternion
        if rotation is None:
            rotation = np.array(IDENTITY_QUATERNION)
        return compose_matrix(self._position, rotation, self._scaling)

    def compute_world_matrix(self) -> np.ndarray:
        """Local matrix composed with every ancestor's local matrix."""
        matrix = self.compute_local_matrix()
        node = self.parent
        while node is not None:
            matrix = node.compute_local_matrix() @ matrix
            node = node.parent
        return matrix

    def dispose(self) -> None:
        """
        Release this node and its whole subtree.

        The node is detached from its parent and removed from its scene.
        Disposing twice is a no-op.
        """
        if self.is_disposed:
            return
        for child in self.get_children():
            child.dispose()
        self.set_parent(None)
        if self._scene is not None:
            self._scene.remove_node(self)
        self.is_disposed = True
        logger.debug(f"Disposed {self!r}")


class Mesh(Node):
    """
    A node that may carry triangle geometry, a material and interaction flags.
    """

    def __init__(
        self,
        name: str,
        scene: Optional['Scene'] = None,
        vertices: Optional[np.ndarray] = None,
        indices: Optional[np.ndarray] = None,
    ):
        self.vertices = None if vertices is None else np.array(vertices, dtype=np.float32).reshape(-1, 3)
        self.indices = None if indices is None else np.array(indices, dtype=np.uint32).reshape(-1)
        self.material: Optional['Material'] = None

        self.is_pickable = True
        self.check_collisions = False
        self.is_visible = True

        super().__init__(name, scene)

    @property
    def has_geometry(self) -> bool:
        return self.vertices is not None and len(self.vertices) > 0

    @property
    def faces(self) -> Optional[np.ndarray]:
        """Get faces (alias for indices reshaped to Nx3)."""
        if self.indices is None:
            return None
        return self.indices.reshape(-1, 3)

    def get_total_vertices(self) -> int:
        return 0 if self.vertices is None else len(self.vertices)

    def get_hierarchy_bounding_vectors(
        self, include_descendants: bool = True
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        World-space axis-aligned bounds of this mesh and its sub-meshes.

        Args:
            include_descendants: Also include every mesh below this node

        Returns:
            Tuple of (min, max). Both are zero when no mesh in the
            hierarchy carries geometry.
        """
        nodes = [self]
        if include_descendants:
            nodes.extend(self.iter_descendants())

        minimum = np.full(3, np.inf)
        maximum = np.full(3, -np.inf)
        for node in nodes:
            if not isinstance(node, Mesh) or not node.has_geometry:
                continue
            world = transform_points(node.compute_world_matrix(), node.vertices)
            minimum = np.minimum(minimum, world.min(axis=0))
            maximum = np.maximum(maximum, world.max(axis=0))

        if not np.all(np.isfinite(minimum)):
            logger.debug(f"No geometry below {self!r}, using empty bounds")
            return np.zeros(3), np.zeros(3)
        return minimum, maximum

    def dispose(self) -> None:
        if self.is_disposed:
            return
        super().dispose()
        self.vertices = None
        self.indices = None
        self.material = None
