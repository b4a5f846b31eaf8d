"""
Main GLB/GLTF parser.
"""

import io
import logging
from typing import Optional, List, Dict, Any
from pygltflib import GLTF2
import numpy as np

from .accessor import AccessorReader
from ...exceptions import GLBParseError

logger = logging.getLogger(__name__)

GLB_MAGIC = b'glTF'


def load_gltf_bytes(data: bytes, source: str = '<bytes>') -> GLTF2:
    """
    Load a GLTF2 document from binary GLB or JSON glTF bytes.

    Args:
        data: Raw file content
        source: Name used in error messages

    Returns:
        GLTF2 object

    Raises:
        GLBParseError: If the payload is neither valid GLB nor glTF JSON
    """
    try:
        if data[:4] == GLB_MAGIC:
            return GLTF2.load_binary_from_file_object(io.BytesIO(data))
        return GLTF2.from_json(data.decode('utf-8'), infer_missing=True)
    except Exception as e:
        raise GLBParseError(f"Failed to parse {source}: {e}") from e


class GLBParser:
    """
    Parser for GLB/GLTF payloads.

    This class wraps a loaded document, providing access to scenes,
    nodes, mesh primitives and animations as plain Python/numpy data.
    """

    def __init__(self, gltf: GLTF2, source: str = '<bytes>',
                 external_buffers: Optional[Dict[int, bytes]] = None):
        """
        Initialize GLB parser.

        Args:
            gltf: Loaded GLTF2 document
            source: URL or path the document came from
            external_buffers: Pre-fetched external buffer data by buffer index
        """
        self.gltf = gltf
        self.source = source
        self.accessor_reader = AccessorReader(self.gltf, external_buffers)

        logger.debug(f"GLB parsed: {source}")
        logger.debug(f"  Scenes: {len(self.gltf.scenes)}")
        logger.debug(f"  Nodes: {len(self.gltf.nodes)}")
        logger.debug(f"  Meshes: {len(self.gltf.meshes)}")
        logger.debug(f"  Animations: {len(self.gltf.animations)}")

    @classmethod
    def from_bytes(cls, data: bytes, source: str = '<bytes>',
                   external_buffers: Optional[Dict[int, bytes]] = None) -> 'GLBParser':
        return cls(load_gltf_bytes(data, source), source, external_buffers)

    def external_buffer_uris(self) -> Dict[int, str]:
        """Buffer index -> relative URI for buffers stored outside the document."""
        uris = {}
        for idx, buffer in enumerate(self.gltf.buffers):
            if buffer.uri and not buffer.uri.startswith('data:'):
                uris[idx] = buffer.uri
        return uris

    def set_external_buffers(self, buffers: Dict[int, bytes]) -> None:
        self.accessor_reader = AccessorReader(self.gltf, buffers)

    def get_scene_root_nodes(self, scene_idx: Optional[int] = None) -> List[int]:
        """
        Get the root node indices of a scene.

        Falls back to every parentless node when the document has no scenes.

        Args:
            scene_idx: Scene index (default: active scene)
        """
        if not self.gltf.scenes:
            children = {c for node in self.gltf.nodes for c in (node.children or [])}
            return [i for i in range(len(self.gltf.nodes)) if i not in children]

        if scene_idx is None:
            scene_idx = self.gltf.scene or 0

        if scene_idx >= len(self.gltf.scenes):
            raise GLBParseError(f"Scene index {scene_idx} out of range")

        return list(self.gltf.scenes[scene_idx].nodes or [])

    def get_node_info(self, node_idx: int) -> Dict[str, Any]:
        """
        Get information about a node.

        Matrix transforms are decomposed into translation/rotation/scale.

        Args:
            node_idx: Node index

        Returns:
            Dictionary with node information
        """
        if node_idx >= len(self.gltf.nodes):
            raise GLBParseError(f"Node index {node_idx} out of range")

        node = self.gltf.nodes[node_idx]

        info = {
            'name': node.name or f'Node_{node_idx}',
            'children': node.children or [],
            'mesh': node.mesh,
            'skin': node.skin,
        }

        if node.matrix is not None:
            # glTF matrices are column-major
            translation, rotation, scale = decompose_matrix(
                np.array(node.matrix, dtype=np.float64).reshape(4, 4).T
            )
            info['translation'] = translation
            info['rotation'] = rotation
            info['scale'] = scale
        else:
            info['translation'] = node.translation or [0, 0, 0]
            info['rotation'] = node.rotation or [0, 0, 0, 1]
            info['scale'] = node.scale or [1, 1, 1]

        return info

    def get_mesh_primitives(self, mesh_idx: int) -> List[Dict[str, Any]]:
        """
        Get triangle geometry of each primitive in a mesh.

        Args:
            mesh_idx: Mesh index

        Returns:
            List of dictionaries with 'positions' and optional 'indices'
        """
        if mesh_idx >= len(self.gltf.meshes):
            raise GLBParseError(f"Mesh index {mesh_idx} out of range")

        primitives = []
        for prim_idx, primitive in enumerate(self.gltf.meshes[mesh_idx].primitives):
            position_idx = getattr(primitive.attributes, 'POSITION', None)
            if position_idx is None:
                logger.warning(f"Primitive {prim_idx} of mesh {mesh_idx} has no position data")
                continue

            prim_data = {
                'index': prim_idx,
                'mode': 4 if primitive.mode is None else primitive.mode,
                'material': primitive.material,
                'positions': self.accessor_reader.read_accessor(position_idx),
            }
            if primitive.indices is not None:
                prim_data['indices'] = self.accessor_reader.read_accessor(primitive.indices)
            primitives.append(prim_data)

        return primitives

    def get_animation_data(self, anim_idx: int) -> Dict[str, Any]:
        """
        Get animation data.

        Args:
            anim_idx: Animation index

        Returns:
            Dictionary with animation data
        """
        if anim_idx >= len(self.gltf.animations):
            raise GLBParseError(f"Animation index {anim_idx} out of range")

        animation = self.gltf.animations[anim_idx]

        anim_data = {
            'name': animation.name or f'Animation_{anim_idx}',
            'channels': [],
            'duration': 0.0,
        }

        for channel in animation.channels:
            if channel.target.node is None:
                continue
            sampler = animation.samplers[channel.sampler]

            times = self.accessor_reader.read_accessor(sampler.input)
            values = self.accessor_reader.read_accessor(sampler.output)

            anim_data['channels'].append({
                'target_node': channel.target.node,
                'target_path': channel.target.path,
                'interpolation': sampler.interpolation or 'LINEAR',
                'times': times,
                'values': values,
            })

            if len(times) > 0:
                anim_data['duration'] = max(anim_data['duration'], float(times[-1]))

        return anim_data


def decompose_matrix(matrix: np.ndarray):
    """
    Split an affine 4x4 matrix (row-major, column vectors) into TRS.

    Returns:
        Tuple of (translation, rotation XYZW, scale)
    """
    translation = matrix[:3, 3].copy()
    basis = matrix[:3, :3]
    scale = np.linalg.norm(basis, axis=0)
    if np.linalg.det(basis) < 0:
        scale[0] = -scale[0]
    rot = basis / np.where(scale == 0, 1.0, scale)

    trace = rot[0, 0] + rot[1, 1] + rot[2, 2]
    if trace > 0:
        s = 0.5 / np.sqrt(trace + 1.0)
        w = 0.25 / s
        x = (rot[2, 1] - rot[1, 2]) * s
        y = (rot[0, 2] - rot[2, 0]) * s
        z = (rot[1, 0] - rot[0, 1]) * s
    elif rot[0, 0] > rot[1, 1] and rot[0, 0] > rot[2, 2]:
        s = 2.0 * np.sqrt(1.0 + rot[0, 0] - rot[1, 1] - rot[2, 2])
        w = (rot[2, 1] - rot[1, 2]) / s
        x = 0.25 * s
        y = (rot[0, 1] + rot[1, 0]) / s
        z = (rot[0, 2] + rot[2, 0]) / s
    elif rot[1, 1] > rot[2, 2]:
        s = 2.0 * np.sqrt(1.0 + rot[1, 1] - rot[0, 0] - rot[2, 2])
        w = (rot[0, 2] - rot[2, 0]) / s
        x = (rot[0, 1] + rot[1, 0]) / s
        y = 0.25 * s
        z = (rot[1, 2] + rot[2, 1]) / s
    else:
        s = 2.0 * np.sqrt(1.0 + rot[2, 2] - rot[0, 0] - rot[1, 1])
        w = (rot[1, 0] - rot[0, 1]) / s
        x = (rot[0, 2] + rot[2, 0]) / s
        y = (rot[1, 2] + rot[2, 1]) / s
        z = 0.25 * s

    return translation, np.array([x, y, z, w]), scale
