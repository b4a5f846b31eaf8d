"""
Asset importing: fetching, glTF parsing and scene construction.
"""

from .fetch import AssetFetcher
from .glb import GLBParser
from .scene_importer import ImportResult, SceneImporter

__all__ = ['AssetFetcher', 'GLBParser', 'ImportResult', 'SceneImporter']
