"""
GLB accessor reader for extracting data from buffers.
"""

import numpy as np
from typing import Dict, Optional
from pygltflib import GLTF2, Accessor, Buffer
import logging

from ...exceptions import GLBParseError

logger = logging.getLogger(__name__)


class AccessorReader:
    """Reads data from GLB accessors."""

    # Component type to numpy dtype mapping
    COMPONENT_TYPE_MAP = {
        5120: np.int8,    # BYTE
        5121: np.uint8,   # UNSIGNED_BYTE
        5122: np.int16,   # SHORT
        5123: np.uint16,  # UNSIGNED_SHORT
        5125: np.uint32,  # UNSIGNED_INT
        5126: np.float32, # FLOAT
    }

    # Type to component count mapping
    TYPE_SIZE_MAP = {
        'SCALAR': 1,
        'VEC2': 2,
        'VEC3': 3,
        'VEC4': 4,
        'MAT2': 4,
        'MAT3': 9,
        'MAT4': 16,
    }

    def __init__(self, gltf: GLTF2, external_buffers: Optional[Dict[int, bytes]] = None):
        """
        Initialize accessor reader.

        Args:
            gltf: GLTF2 object
            external_buffers: Pre-fetched data of buffers referencing external
                URIs, keyed by buffer index
        """
        self.gltf = gltf
        self.external_buffers = external_buffers or {}
        self._buffer_cache = {}

    def read_accessor(self, accessor_idx: int) -> np.ndarray:
        """
        Read data from accessor.

        Normalized integer accessors are converted to floats in [-1, 1]
        or [0, 1] as the glTF specification prescribes.

        Args:
            accessor_idx: Index of accessor

        Returns:
            Numpy array with accessor data

        Raises:
            GLBParseError: If accessor cannot be read
        """
        if accessor_idx is None or accessor_idx < 0:
            raise GLBParseError(f"Invalid accessor index: {accessor_idx}")

        if accessor_idx >= len(self.gltf.accessors):
            raise GLBParseError(f"Accessor index {accessor_idx} out of range")

        accessor = self.gltf.accessors[accessor_idx]

        dtype = self.COMPONENT_TYPE_MAP.get(accessor.componentType)
        if dtype is None:
            raise GLBParseError(f"Unknown component type: {accessor.componentType}")

        elements_per_item = self.TYPE_SIZE_MAP.get(accessor.type)
        if elements_per_item is None:
            raise GLBParseError(f"Unknown accessor type: {accessor.type}")

        # Sparse accessor or zero-initialized
        if accessor.bufferView is None:
            return self._create_zero_data(accessor)

        buffer_view = self.gltf.bufferViews[accessor.bufferView]
        buffer_data = self._get_buffer_data(buffer_view.buffer)

        offset = (buffer_view.byteOffset or 0) + (accessor.byteOffset or 0)
        item_size = elements_per_item * np.dtype(dtype).itemsize
        stride = buffer_view.byteStride or item_size

        try:
            if stride == item_size:
                byte_length = accessor.count * item_size
                data = np.frombuffer(buffer_data[offset:offset + byte_length], dtype=dtype)
            else:
                # Interleaved: gather each item from its strided slot
                rows = [
                    np.frombuffer(buffer_data[offset + i * stride:offset + i * stride + item_size], dtype=dtype)
                    for i in range(accessor.count)
                ]
                data = np.concatenate(rows) if rows else np.zeros(0, dtype=dtype)

            if data.size != accessor.count * elements_per_item:
                raise ValueError(f"expected {accessor.count * elements_per_item} values, got {data.size}")

            if elements_per_item > 1:
                data = data.reshape((accessor.count, elements_per_item))

        except ValueError as e:
            raise GLBParseError(f"Failed to read accessor {accessor_idx}: {e}") from e

        if accessor.normalized and dtype is not np.float32:
            data = self._denormalize(data, dtype)

        logger.debug(f"Read accessor {accessor_idx}: shape={data.shape}, dtype={data.dtype}")
        return data

    def _get_buffer_data(self, buffer_idx: int) -> bytes:
        """Get raw buffer data."""
        if buffer_idx in self._buffer_cache:
            return self._buffer_cache[buffer_idx]

        buffer: Buffer = self.gltf.buffers[buffer_idx]
        if buffer.uri is None:
            # Binary chunk (GLB format)
            data = self.gltf.binary_blob()
            if data is None:
                raise GLBParseError("Binary buffer expected but not found")
        elif buffer.uri.startswith('data:'):
            data = self.gltf.get_data_from_buffer_uri(buffer.uri)
        elif buffer_idx in self.external_buffers:
            data = self.external_buffers[buffer_idx]
        else:
            raise GLBParseError(f"External buffer {buffer.uri!r} was not fetched")

        self._buffer_cache[buffer_idx] = data
        return data

    def _create_zero_data(self, accessor: Accessor) -> np.ndarray:
        """Create zero-initialized data for accessor."""
        dtype = self.COMPONENT_TYPE_MAP[accessor.componentType]
        elements_per_item = self.TYPE_SIZE_MAP[accessor.type]

        if elements_per_item > 1:
            shape = (accessor.count, elements_per_item)
        else:
            shape = (accessor.count,)

        return np.zeros(shape, dtype=dtype)

    @staticmethod
    def _denormalize(data: np.ndarray, dtype) -> np.ndarray:
        info = np.iinfo(dtype)
        values = data.astype(np.float32) / float(info.max)
        if info.min < 0:
            values = np.maximum(values, -1.0)
        return values
