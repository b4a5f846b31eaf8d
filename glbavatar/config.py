"""
Configuration for avatar and scene asset loading.

The defaults reproduce the conventions the authored assets rely on: the
pivot bias under the avatar's bounding centre, the ``Collision``/``Floor``
mesh name markers and the ``Hips`` root bone.
"""

import json
from dataclasses import dataclass, field, asdict
from typing import Optional, Dict, Any, Tuple
from pathlib import Path


@dataclass
class LoaderConfig:
    """
    Configuration for the resource manager.

    Attributes:
        pivot_offset: Offset added to the recentred avatar position
        collision_marker: Name substring marking collision volume meshes
        floor_marker: Name substring marking pickable floor collision meshes
        root_bone_name: Bone whose motion is re-expressed in the mesh frame
        fallback_mesh_name: Name of the placeholder sphere mesh
        fallback_material_name: Registry key of the shared placeholder material
        fallback_color: RGB colour of the placeholder material
        fallback_diameter: Diameter of the placeholder sphere
        fetch_timeout: Seconds before an HTTP fetch gives up (None waits forever)
    """

    pivot_offset: Tuple[float, float, float] = (0.0, -0.1, 0.0)
    collision_marker: str = 'Collision'
    floor_marker: str = 'Floor'
    root_bone_name: str = 'Hips'
    fallback_mesh_name: str = 'DummyMesh'
    fallback_material_name: str = 'DummyMaterial'
    fallback_color: Tuple[float, float, float] = (1.0, 0.0, 0.0)
    fallback_diameter: float = 1.0
    fetch_timeout: Optional[float] = None

    # Additional fields
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.pivot_offset = tuple(float(v) for v in self.pivot_offset)
        self.fallback_color = tuple(float(v) for v in self.fallback_color)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'LoaderConfig':
        """Create config from dictionary."""
        known_fields = {f.name for f in cls.__dataclass_fields__.values()}
        known_kwargs = {k: v for k, v in config_dict.items() if k in known_fields}
        extra_kwargs = {k: v for k, v in config_dict.items() if k not in known_fields}

        config = cls(**known_kwargs)
        config.extra.update(extra_kwargs)
        return config

    def update(self, **kwargs) -> 'LoaderConfig':
        """Return a new config with updated values."""
        config_dict = self.to_dict()
        config_dict.update(kwargs)
        return LoaderConfig.from_dict(config_dict)


def load_config(filepath: str) -> LoaderConfig:
    """
    Load configuration from JSON file.

    Args:
        filepath: Path to JSON config file

    Returns:
        LoaderConfig object
    """
    filepath = Path(filepath)
    with open(filepath, 'r') as f:
        config_dict = json.load(f)
    return LoaderConfig.from_dict(config_dict)


def save_config(config: LoaderConfig, filepath: str) -> None:
    """
    Save configuration to JSON file.

    Args:
        config: LoaderConfig to save
        filepath: Output file path
    """
    filepath = Path(filepath)
    filepath.parent.mkdir(parents=True, exist_ok=True)

    with open(filepath, 'w') as f:
        json.dump(config.to_dict(), f, indent=2)
