"""
Scene container owning nodes, materials and the animation-group registry.
"""

import logging
from typing import Callable, List, Optional

from .animation import AnimationGroup
from .material import Material
from .node import Mesh, Node

logger = logging.getLogger(__name__)


class Scene:
    """
    Owner of every disposable resource created while loading assets.

    Materials are registered by name so shared resources can be looked up
    instead of recreated. Animation groups register themselves on creation
    and are disposed with the scene unless removed beforehand.
    """

    def __init__(self, name: str = 'scene'):
        self.name = name
        self.meshes: List[Mesh] = []
        self.transform_nodes: List[Node] = []
        self.materials: List[Material] = []
        self.animation_groups: List[AnimationGroup] = []
        self.is_disposed = False

    def __repr__(self) -> str:
        return (f"Scene(name={self.name!r}, meshes={len(self.meshes)}, "
                f"nodes={len(self.transform_nodes)}, materials={len(self.materials)}, "
                f"animation_groups={len(self.animation_groups)})")

    # Nodes

    def add_node(self, node: Node) -> None:
        registry = self.meshes if isinstance(node, Mesh) else self.transform_nodes
        if not any(n is node for n in registry):
            registry.append(node)

    def remove_node(self, node: Node) -> None:
        registry = self.meshes if isinstance(node, Mesh) else self.transform_nodes
        for i, n in enumerate(registry):
            if n is node:
                del registry[i]
                return

    def get_mesh_by_id(self, mesh_id: str) -> Optional[Mesh]:
        for mesh in self.meshes:
            if mesh.id == mesh_id:
                return mesh
        return None

    def get_node_by_name(self, name: str) -> Optional[Node]:
        for node in self.meshes + self.transform_nodes:
            if node.name == name:
                return node
        return None

    # Materials

    def add_material(self, material: Material) -> None:
        if not any(m is material for m in self.materials):
            self.materials.append(material)

    def get_material_by_name(self, name: str) -> Optional[Material]:
        for material in self.materials:
            if material.name == name:
                return material
        return None

    def get_or_create_material(self, name: str, factory: Callable[[str], Material]) -> Material:
        """
        Look a material up by name, creating and registering it on a miss.

        Args:
            name: Registry key
            factory: Called with ``name`` to build the material when missing

        Returns:
            The registered material
        """
        material = self.get_material_by_name(name)
        if material is None:
            material = factory(name)
            self.add_material(material)
            logger.debug(f"Created material {name!r}")
        return material

    # Animation groups

    def add_animation_group(self, group: AnimationGroup) -> None:
        if not any(g is group for g in self.animation_groups):
            self.animation_groups.append(group)

    def remove_animation_group(self, group: AnimationGroup) -> None:
        for i, g in enumerate(self.animation_groups):
            if g is group:
                del self.animation_groups[i]
                return

    def dispose(self) -> None:
        """Dispose every registered animation group and node, then drop materials."""
        if self.is_disposed:
            return
        for group in list(self.animation_groups):
            group.dispose()
        for node in list(self.meshes) + list(self.transform_nodes):
            node.dispose()
        self.materials = []
        self.is_disposed = True
        logger.info(f"Disposed scene {self.name!r}")
