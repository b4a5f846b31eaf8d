"""
Batch asset task queue.
"""

from .assets_manager import AssetsManager, AssetTaskState, MeshAssetTask, TaskError

__all__ = ['AssetsManager', 'AssetTaskState', 'MeshAssetTask', 'TaskError']
