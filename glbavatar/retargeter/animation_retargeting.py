"""
Re-express imported skeletal animation in a reference mesh's local frame.

Root motion is authored on the ``Hips`` bone relative to the source rig's
orientation and scale. When the animation is replayed on a mesh with a
different applied rotation/scale, the root displacement and facing have to
be projected into that mesh's frame:

- Hips ``position`` keys:            v' = scaling * rotate(R, v)
- Hips ``rotationQuaternion`` keys:  q' = R * q
- other bones' ``rotationQuaternion`` curves are orientation-only and kept
  as they are (the curve object is reused)
- every other curve is dropped

Which rule applies is looked up in ``RETARGET_RULES`` keyed by
(target is root bone, property path).
"""

import logging
import numpy as np
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from ..common import PROPERTY_POSITION, PROPERTY_ROTATION, quaternion_multiply, rotate_vector
from ..exceptions import AnimationError
from ..scene import Animation, AnimationGroup, Node, Scene

logger = logging.getLogger(__name__)

DEFAULT_ROOT_BONE = 'Hips'

Strategy = Callable[[Animation, Node], Animation]


def _map_keys(animation: Animation, fn: Callable[[np.ndarray], np.ndarray]) -> None:
    """Apply ``fn`` to every key value and cubic spline tangent in place."""
    for key in animation.get_keys():
        key.value = fn(key.value)
        if key.in_tangent is not None:
            key.in_tangent = fn(key.in_tangent)
        if key.out_tangent is not None:
            key.out_tangent = fn(key.out_tangent)


def retarget_root_position(animation: Animation, reference: Node) -> Animation:
    """
    Clone a root position curve into the reference mesh's frame.

    Each key is rotated by the mesh rotation, then scaled component-wise
    by the mesh scaling. A mesh without a rotation quaternion only scales.
    """
    result = animation.clone()
    rotation = reference.rotation_quaternion
    scaling = np.array(reference.scaling, dtype=np.float64)

    def to_mesh_frame(value: np.ndarray) -> np.ndarray:
        if rotation is not None:
            value = rotate_vector(value, rotation)
        return np.asarray(value, dtype=np.float64) * scaling

    _map_keys(result, to_mesh_frame)
    return result


def retarget_root_rotation(animation: Animation, reference: Node) -> Animation:
    """
    Clone a root rotation curve, composing the mesh rotation in front.

    Keys are left untouched when the mesh has no rotation quaternion.
    """
    result = animation.clone()
    rotation = reference.rotation_quaternion
    if rotation is not None:
        _map_keys(result, lambda value: quaternion_multiply(rotation, value))
    return result


def keep_animation(animation: Animation, reference: Node) -> Animation:
    return animation


# (target is root bone, property path) -> strategy; missing entries are dropped
RETARGET_RULES: Dict[Tuple[bool, str], Strategy] = {
    (True, PROPERTY_POSITION): retarget_root_position,
    (True, PROPERTY_ROTATION): retarget_root_rotation,
    (False, PROPERTY_ROTATION): keep_animation,
}


def select_strategy(is_root: bool, target_property: str) -> Optional[Strategy]:
    return RETARGET_RULES.get((is_root, target_property))


class AnimationRetargeter:
    """
    Builds trimmed, reference-frame animation groups from imported ones.

    Source groups are disposed once processed. The returned groups are
    removed from the scene registry: they belong to the caller, who must
    dispose them.
    """

    def __init__(self, root_bone_name: str = DEFAULT_ROOT_BONE):
        self.root_bone_name = root_bone_name

    def retarget(
        self,
        source_groups: Iterable[AnimationGroup],
        reference_mesh: Node,
        scene: Optional[Scene] = None,
    ) -> List[AnimationGroup]:
        """
        Retarget every source group against ``reference_mesh``.

        Args:
            source_groups: Imported animation groups; each is disposed after use
            reference_mesh: Mesh whose rotation and scaling define the target frame
            scene: Scene the new groups are created in (defaults to each
                source group's scene)

        Returns:
            New animation groups in source order

        Raises:
            AnimationError: If a key value cannot be transformed
        """
        sources = list(source_groups)
        output = []
        try:
            for source in sources:
                with source:
                    output.append(self._retarget_group(source, reference_mesh, scene or source.scene))
        except Exception:
            # Outputs are no longer in the scene registry
            for group in output:
                group.dispose()
            for source in sources:
                source.dispose()
            raise
        return output

    def _retarget_group(self, source: AnimationGroup, reference_mesh: Node,
                        scene: Optional[Scene]) -> AnimationGroup:
        group = AnimationGroup(source.name, scene=scene)
        seen = set()
        dropped = 0

        for targeted in source.targeted_animations:
            animation = targeted.animation
            is_root = targeted.target.name == self.root_bone_name
            strategy = select_strategy(is_root, animation.target_property)
            if strategy is None:
                dropped += 1
                continue

            slot = (id(targeted.target), animation.target_property)
            if slot in seen:
                logger.warning(f"{source.name}: duplicate {animation.target_property} curve "
                               f"on {targeted.target.name}, keeping the first")
                continue
            seen.add(slot)

            try:
                retargeted = strategy(animation, reference_mesh)
            except (ValueError, TypeError) as e:
                group.dispose()
                raise AnimationError(
                    f"Failed to retarget {animation.name} on {targeted.target.name}: {e}"
                ) from e
            group.add_targeted_animation(retargeted, targeted.target)

        # Hand ownership to the caller: scene teardown must not dispose it
        if scene is not None:
            scene.remove_animation_group(group)

        logger.debug(f"Retargeted {source.name}: kept {len(group.targeted_animations)}, dropped {dropped}")
        return group


def retarget(
    source_groups: Iterable[AnimationGroup],
    reference_mesh: Node,
    scene: Optional[Scene] = None,
    root_bone_name: str = DEFAULT_ROOT_BONE,
) -> List[AnimationGroup]:
    """Convenience wrapper around :class:`AnimationRetargeter`."""
    return AnimationRetargeter(root_bone_name).retarget(source_groups, reference_mesh, scene)
