"""
Builds scene objects (nodes, meshes, animation groups) from glTF assets.

Every import is wrapped in a ``__root__`` mesh: ``meshes[0]`` of the
result is that wrapper and the glTF scene's root nodes are its children.
"""

import asyncio
import logging
import numpy as np
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Union

from .fetch import AssetFetcher
from .glb import GLBParser
from ..common import GLTF_PATH_TO_PROPERTY, ROOT_NODE_NAME, IDENTITY_QUATERNION, split_url
from ..scene import Animation, AnimationGroup, Mesh, Node, Scene

logger = logging.getLogger(__name__)

TRIANGLES = 4


@dataclass
class ImportResult:
    """Scene objects created by one import."""
    meshes: List[Mesh] = field(default_factory=list)
    transform_nodes: List[Node] = field(default_factory=list)
    animation_groups: List[AnimationGroup] = field(default_factory=list)


class SceneImporter:
    """
    Imports glTF/GLB assets into a :class:`Scene`.
    """

    def __init__(self, fetcher: Optional[AssetFetcher] = None):
        self.fetcher = fetcher or AssetFetcher()

    async def import_meshes(
        self,
        url: str,
        scene: Scene,
        meshes_names: Union[str, Sequence[str], None] = None,
    ) -> ImportResult:
        """
        Fetch and import every node, mesh and animation at ``url``.

        Args:
            url: Path or URL of a .glb/.gltf asset
            scene: Scene receiving the created objects
            meshes_names: Restrict the returned meshes to these names (the
                root wrapper is always returned); empty means all

        Returns:
            ImportResult with the root wrapper first in ``meshes``

        Raises:
            AssetFetchError: If the asset or one of its buffers cannot be fetched
            GLBParseError: If the asset cannot be parsed
        """
        logger.info(f"Importing {url}")
        data = await self.fetcher.fetch(url)
        parser = GLBParser.from_bytes(data, url)

        external = parser.external_buffer_uris()
        if external:
            root_url = split_url(url).root_url
            indices = list(external)
            payloads = await asyncio.gather(
                *(self.fetcher.fetch(root_url + external[idx]) for idx in indices)
            )
            parser.set_external_buffers(dict(zip(indices, payloads)))

        result = self._build(parser, scene)

        if meshes_names:
            wanted = {meshes_names} if isinstance(meshes_names, str) else set(meshes_names)
            result.meshes = [result.meshes[0]] + [m for m in result.meshes[1:] if m.name in wanted]

        logger.info(f"Imported {url}: {len(result.meshes)} meshes, "
                    f"{len(result.transform_nodes)} nodes, "
                    f"{len(result.animation_groups)} animation groups")
        return result

    def _build(self, parser: GLBParser, scene: Scene) -> ImportResult:
        result = ImportResult()

        root = Mesh(ROOT_NODE_NAME, scene=scene)
        root.rotation_quaternion = IDENTITY_QUATERNION
        result.meshes.append(root)

        nodes: Dict[int, Node] = {}

        def build_node(node_idx: int, parent: Node):
            if node_idx in nodes:
                logger.warning(f"Node {node_idx} referenced twice, skipping")
                return
            info = parser.get_node_info(node_idx)

            if info['mesh'] is not None:
                node = self._build_mesh(parser, info, scene)
                result.meshes.append(node)
            else:
                node = Node(info['name'], scene=scene)
                result.transform_nodes.append(node)

            node.position = info['translation']
            node.rotation_quaternion = info['rotation']
            node.scaling = info['scale']
            node.set_parent(parent)
            nodes[node_idx] = node

            for child_idx in info['children']:
                build_node(child_idx, node)

        try:
            for node_idx in parser.get_scene_root_nodes():
                build_node(node_idx, root)

            for anim_idx in range(len(parser.gltf.animations)):
                result.animation_groups.append(
                    self._build_animation_group(parser, anim_idx, nodes, scene)
                )
        except Exception:
            self._discard(result)
            raise

        return result

    @staticmethod
    def _discard(result: ImportResult) -> None:
        """Dispose every object a failed build registered in the scene."""
        for group in result.animation_groups:
            group.dispose()
        # Nodes that failed before being parented are not under the root
        for node in result.meshes + result.transform_nodes:
            node.dispose()
        logger.debug(f"Discarded partial import: {len(result.meshes)} meshes, "
                     f"{len(result.transform_nodes)} nodes")

    @staticmethod
    def _build_mesh(parser: GLBParser, info: Dict, scene: Scene) -> Mesh:
        """Merge every primitive of a glTF mesh into one scene mesh."""
        vertices = []
        indices = []
        offset = 0
        for prim in parser.get_mesh_primitives(info['mesh']):
            positions = np.asarray(prim['positions'], dtype=np.float32).reshape(-1, 3)
            if prim['mode'] == TRIANGLES:
                if 'indices' in prim:
                    prim_indices = np.asarray(prim['indices'], dtype=np.uint32).reshape(-1)
                else:
                    prim_indices = np.arange(len(positions), dtype=np.uint32)
                indices.append(prim_indices + offset)
            else:
                logger.debug(f"Primitive mode {prim['mode']} of {info['name']} kept as points")
            vertices.append(positions)
            offset += len(positions)

        return Mesh(
            info['name'],
            scene=scene,
            vertices=np.concatenate(vertices) if vertices else None,
            indices=np.concatenate(indices) if indices else None,
        )

    @staticmethod
    def _build_animation_group(
        parser: GLBParser, anim_idx: int, nodes: Dict[int, Node], scene: Scene
    ) -> AnimationGroup:
        anim_data = parser.get_animation_data(anim_idx)
        group = AnimationGroup(anim_data['name'], scene=scene)

        try:
            for channel_idx, channel in enumerate(anim_data['channels']):
                target = nodes.get(channel['target_node'])
                if target is None:
                    logger.warning(f"{group.name}: channel {channel_idx} targets a node outside the scene")
                    continue

                target_property = GLTF_PATH_TO_PROPERTY.get(channel['target_path'])
                if target_property is None:
                    logger.warning(f"{group.name}: unsupported channel path {channel['target_path']!r}")
                    continue

                animation = Animation.from_samples(
                    f"{group.name}_channel{channel_idx}",
                    target_property,
                    channel['times'],
                    channel['values'],
                    channel['interpolation'],
                )
                group.add_targeted_animation(animation, target)
        except Exception:
            group.dispose()
            raise

        logger.debug(f"Built {group!r}")
        return group
