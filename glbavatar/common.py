"""
Common utilities and constants shared by the scene model, importer and retargeter.

All quaternions are stored in glTF order: XYZW.
"""

import numpy as np
from typing import NamedTuple, Sequence
import logging

# Set up module logger
logger = logging.getLogger(__name__)

# Animation property paths
PROPERTY_POSITION = 'position'
PROPERTY_ROTATION = 'rotationQuaternion'
PROPERTY_SCALING = 'scaling'
PROPERTY_INFLUENCE = 'influence'

# glTF channel path -> scene property path
GLTF_PATH_TO_PROPERTY = {
    'translation': PROPERTY_POSITION,
    'rotation': PROPERTY_ROTATION,
    'scale': PROPERTY_SCALING,
    'weights': PROPERTY_INFLUENCE,
}

IDENTITY_QUATERNION = (0.0, 0.0, 0.0, 1.0)

# Name of the wrapper node the importer puts above the glTF scene roots
ROOT_NODE_NAME = '__root__'


def as_vector3(value: Sequence[float]) -> np.ndarray:
    """Coerce a 3-sequence into a float64 numpy vector."""
    vec = np.asarray(value, dtype=np.float64).reshape(-1)
    if vec.shape != (3,):
        raise ValueError(f"Expected 3 components, got {vec.shape}")
    return vec.copy()


def as_quaternion(value: Sequence[float]) -> np.ndarray:
    """Coerce a 4-sequence (XYZW) into a float64 numpy quaternion."""
    quat = np.asarray(value, dtype=np.float64).reshape(-1)
    if quat.shape != (4,):
        raise ValueError(f"Expected 4 components, got {quat.shape}")
    return quat.copy()


def quaternion_multiply(q1: np.ndarray, q2: np.ndarray) -> np.ndarray:
    """
    Multiply two quaternions (XYZW format).

    q = q1 * q2, i.e. the rotation q2 followed by q1 when applied to a vector.

    Args:
        q1: Left quaternion
        q2: Right quaternion

    Returns:
        Hamilton product in XYZW format
    """
    x1, y1, z1, w1 = q1
    x2, y2, z2, w2 = q2

    x = w1*x2 + x1*w2 + y1*z2 - z1*y2
    y = w1*y2 - x1*z2 + y1*w2 + z1*x2
    z = w1*z2 + x1*y2 - y1*x2 + z1*w2
    w = w1*w2 - x1*x2 - y1*y2 - z1*z2

    return np.array([x, y, z, w])


def rotate_vector(vec: np.ndarray, quat: np.ndarray) -> np.ndarray:
    """
    Rotate a 3D vector by a quaternion (XYZW).

    Computes q * v * q^-1 using the expanded form
    v' = v + 2w(u x v) + 2(u x (u x v)), with u the vector part of q.
    """
    u = np.asarray(quat[:3], dtype=np.float64)
    w = float(quat[3])
    v = np.asarray(vec, dtype=np.float64)

    t = 2.0 * np.cross(u, v)
    return v + w * t + np.cross(u, t)


def quaternion_to_matrix(quat: np.ndarray) -> np.ndarray:
    """Convert an XYZW quaternion to a 3x3 rotation matrix."""
    x, y, z, w = quat
    xx, yy, zz = x * x, y * y, z * z
    xy, xz, yz = x * y, x * z, y * z
    wx, wy, wz = w * x, w * y, w * z

    return np.array([
        [1 - 2 * (yy + zz), 2 * (xy - wz), 2 * (xz + wy)],
        [2 * (xy + wz), 1 - 2 * (xx + zz), 2 * (yz - wx)],
        [2 * (xz - wy), 2 * (yz + wx), 1 - 2 * (xx + yy)]
    ])


def compose_matrix(translation: np.ndarray, rotation: np.ndarray,
                   scale: np.ndarray) -> np.ndarray:
    """
    Build a 4x4 local transform matrix from TRS components.

    Args:
        translation: 3D translation
        rotation: XYZW quaternion
        scale: 3D scale

    Returns:
        Matrix applying scale, then rotation, then translation (column vectors)
    """
    matrix = np.eye(4)
    matrix[:3, :3] = quaternion_to_matrix(rotation) @ np.diag(scale)
    matrix[:3, 3] = translation
    return matrix


def transform_points(matrix: np.ndarray, points: np.ndarray) -> np.ndarray:
    """Apply a 4x4 transform to an N x 3 array of points."""
    points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    return points @ matrix[:3, :3].T + matrix[:3, 3]


class ResourceUrl(NamedTuple):
    """A URL split into its directory part and file name."""
    root_url: str
    filename: str


def split_url(url: str) -> ResourceUrl:
    """
    Split a URL at its last '/'.

    ``root_url + filename`` always reconstructs ``url``; ``root_url`` keeps
    the trailing separator and is empty when ``url`` has none.

    Examples:
        >>> split_url("a/b/c.glb")
        ResourceUrl(root_url='a/b/', filename='c.glb')
        >>> split_url("c.glb")
        ResourceUrl(root_url='', filename='c.glb')
    """
    index = url.rfind('/') + 1
    return ResourceUrl(url[:index], url[index:])
