"""
GLBAVATAR
=========

Asynchronous avatar and scene asset loading with root-motion retargeting.
"""

__version__ = "0.1.0"

from .common import ResourceUrl, split_url
from .config import LoaderConfig, load_config, save_config
from .exceptions import (
    ImporterError,
    AssetFetchError,
    GLBParseError,
    MeshError,
    AnimationError,
)
from .resource import AvatarAnimationResult, AvatarLoadResult, ResourceManager
from .retargeter import AnimationRetargeter, retarget
from .scene import Scene
from .tasks import AssetsManager

__all__ = [
    "ResourceManager", "AvatarAnimationResult", "AvatarLoadResult",
    "ResourceUrl", "split_url",
    "LoaderConfig", "load_config", "save_config",
    "AnimationRetargeter", "retarget",
    "Scene", "AssetsManager",
    "ImporterError", "AssetFetchError", "GLBParseError", "MeshError", "AnimationError",
]
