"""
Animation curves, targeted animations and animation groups.

An :class:`Animation` is a named property path (``position``,
``rotationQuaternion``, ...) with ordered keyframes. An
:class:`AnimationGroup` binds animations to scene nodes and is registered
in its scene's animation-group registry until it is removed or disposed.
"""

import logging
import numpy as np
from dataclasses import dataclass
from typing import List, Optional, TYPE_CHECKING

from ..common import PROPERTY_ROTATION

if TYPE_CHECKING:
    from .node import Node
    from .scene import Scene

logger = logging.getLogger(__name__)

INTERPOLATION_LINEAR = 'LINEAR'
INTERPOLATION_STEP = 'STEP'
INTERPOLATION_CUBICSPLINE = 'CUBICSPLINE'


@dataclass
class Keyframe:
    """
    A single key: time in seconds plus a vector or XYZW quaternion value.

    Cubic spline keys also carry their in/out tangents.
    """
    frame: float
    value: np.ndarray
    in_tangent: Optional[np.ndarray] = None
    out_tangent: Optional[np.ndarray] = None

    def copy(self) -> 'Keyframe':
        return Keyframe(
            frame=self.frame,
            value=np.array(self.value, dtype=np.float64),
            in_tangent=None if self.in_tangent is None else np.array(self.in_tangent, dtype=np.float64),
            out_tangent=None if self.out_tangent is None else np.array(self.out_tangent, dtype=np.float64),
        )


class Animation:
    """An animated property curve."""

    def __init__(
        self,
        name: str,
        target_property: str,
        keys: Optional[List[Keyframe]] = None,
        interpolation: str = INTERPOLATION_LINEAR,
    ):
        self.name = name
        self.target_property = target_property
        self.interpolation = interpolation
        self._keys: List[Keyframe] = list(keys or [])

    def __repr__(self) -> str:
        return (f"Animation(name={self.name!r}, target_property={self.target_property!r}, "
                f"keys={len(self._keys)})")

    @classmethod
    def from_samples(
        cls,
        name: str,
        target_property: str,
        times: np.ndarray,
        values: np.ndarray,
        interpolation: str = INTERPOLATION_LINEAR,
    ) -> 'Animation':
        """
        Build a curve from sampler input/output arrays.

        Args:
            name: Curve name
            target_property: Property path the curve drives
            times: Key times, shape (N,)
            values: Key values, shape (N, C), or (3N, C) for cubic splines
                laid out as in-tangent, value, out-tangent per key
            interpolation: glTF interpolation mode

        Returns:
            New animation curve
        """
        times = np.asarray(times, dtype=np.float64).reshape(-1)
        values = np.asarray(values, dtype=np.float64)
        if values.ndim == 1:
            values = values.reshape(len(times) * (3 if interpolation == INTERPOLATION_CUBICSPLINE else 1), -1)

        keys = []
        if interpolation == INTERPOLATION_CUBICSPLINE:
            for i, t in enumerate(times):
                keys.append(Keyframe(
                    frame=float(t),
                    value=values[3 * i + 1].copy(),
                    in_tangent=values[3 * i].copy(),
                    out_tangent=values[3 * i + 2].copy(),
                ))
        else:
            for i, t in enumerate(times):
                keys.append(Keyframe(frame=float(t), value=values[i].copy()))

        return cls(name, target_property, keys, interpolation)

    @property
    def is_quaternion(self) -> bool:
        return self.target_property == PROPERTY_ROTATION

    def get_keys(self) -> List[Keyframe]:
        """The live keyframe list; edits apply to this curve."""
        return self._keys

    def get_highest_frame(self) -> float:
        return self._keys[-1].frame if self._keys else 0.0

    def clone(self) -> 'Animation':
        """Copy of this curve with independent keyframe values."""
        return Animation(
            self.name,
            self.target_property,
            [key.copy() for key in self._keys],
            self.interpolation,
        )


@dataclass
class TargetedAnimation:
    """An animation curve bound to one scene node."""
    animation: Animation
    target: 'Node'


class AnimationGroup:
    """
    A named set of targeted animations played together.

    Creating a group registers it in ``scene``; the scene then disposes it
    on teardown unless it is removed from the registry first.
    """

    def __init__(self, name: str, scene: Optional['Scene'] = None):
        self.name = name
        self.targeted_animations: List[TargetedAnimation] = []
        self.is_disposed = False
        self._scene = scene
        if scene is not None:
            scene.add_animation_group(self)

    def __repr__(self) -> str:
        return f"AnimationGroup(name={self.name!r}, animations={len(self.targeted_animations)})"

    @property
    def scene(self) -> Optional['Scene']:
        return self._scene

    def __enter__(self) -> 'AnimationGroup':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.dispose()

    @property
    def from_frame(self) -> float:
        frames = [ta.animation.get_keys()[0].frame
                  for ta in self.targeted_animations if ta.animation.get_keys()]
        return min(frames) if frames else 0.0

    @property
    def to_frame(self) -> float:
        frames = [ta.animation.get_highest_frame() for ta in self.targeted_animations]
        return max(frames) if frames else 0.0

    def add_targeted_animation(self, animation: Animation, target: 'Node') -> TargetedAnimation:
        targeted = TargetedAnimation(animation=animation, target=target)
        self.targeted_animations.append(targeted)
        return targeted

    def dispose(self) -> None:
        """Remove the group from its scene and drop its animation references."""
        if self.is_disposed:
            return
        if self._scene is not None:
            self._scene.remove_animation_group(self)
        self.targeted_animations = []
        self.is_disposed = True
        logger.debug(f"Disposed animation group {self.name!r}")
