"""
Batch queue of named asset-loading tasks.

Tasks in a batch fetch concurrently; their callbacks run on the event loop
one at a time. A failing task never affects its siblings and the batch
join reports completion, not success.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Sequence, Union

from ..importer import SceneImporter
from ..scene import AnimationGroup, Mesh, Node, Scene

logger = logging.getLogger(__name__)


class AssetTaskState(Enum):
    INIT = 'init'
    RUNNING = 'running'
    DONE = 'done'
    ERROR = 'error'


@dataclass
class TaskError:
    message: str
    exception: Optional[BaseException] = None


class MeshAssetTask:
    """
    Loads the meshes of one asset file.

    Attributes:
        on_success: Called with the task once its meshes are loaded
        on_error: Called with the task, a message and the exception on failure
    """

    def __init__(self, name: str, meshes_names: Union[str, Sequence[str], None],
                 root_url: str, scene_filename: str):
        self.name = name
        self.meshes_names = meshes_names
        self.root_url = root_url
        self.scene_filename = scene_filename

        self.on_success: Optional[Callable[['MeshAssetTask'], None]] = None
        self.on_error: Optional[Callable[['MeshAssetTask', str, Optional[BaseException]], None]] = None

        self.task_state = AssetTaskState.INIT
        self.error_object: Optional[TaskError] = None
        self.loaded_meshes: List[Mesh] = []
        self.loaded_transform_nodes: List[Node] = []
        self.loaded_animation_groups: List[AnimationGroup] = []

    def __repr__(self) -> str:
        return f"MeshAssetTask(name={self.name!r}, url={self.url!r}, state={self.task_state.value})"

    @property
    def url(self) -> str:
        return self.root_url + self.scene_filename

    @property
    def is_completed(self) -> bool:
        return self.task_state in (AssetTaskState.DONE, AssetTaskState.ERROR)

    async def run(self, scene: Scene, importer: SceneImporter) -> None:
        """Import the asset and fire the matching callback."""
        self.task_state = AssetTaskState.RUNNING
        try:
            result = await importer.import_meshes(self.url, scene, self.meshes_names)
        except Exception as e:
            self._fail(f"Unable to load {self.url}", e)
            return

        self.loaded_meshes = result.meshes
        self.loaded_transform_nodes = result.transform_nodes
        self.loaded_animation_groups = result.animation_groups

        if self.on_success is not None:
            try:
                self.on_success(self)
            except Exception as e:
                self._fail(f"Success callback of {self.name} failed", e)
                return

        self.task_state = AssetTaskState.DONE

    def _fail(self, message: str, exception: Optional[BaseException]) -> None:
        self.task_state = AssetTaskState.ERROR
        self.error_object = TaskError(message, exception)
        logger.debug(f"{message}: {exception}")
        if self.on_error is not None:
            self.on_error(self, message, exception)


class AssetsManager:
    """
    Queue of asset tasks bound to one scene.
    """

    def __init__(self, scene: Scene, importer: Optional[SceneImporter] = None):
        self.scene = scene
        self.importer = importer or SceneImporter()
        self._tasks: List[MeshAssetTask] = []

    @property
    def tasks(self) -> List[MeshAssetTask]:
        return list(self._tasks)

    def add_mesh_task(self, task_name: str, meshes_names: Union[str, Sequence[str], None],
                      root_url: str, scene_filename: str) -> MeshAssetTask:
        """
        Queue a mesh-loading task.

        Args:
            task_name: Task name, shared by every task of a batch
            meshes_names: Meshes to keep from the file; empty keeps all
            root_url: Directory URL, ending in '/' or empty
            scene_filename: File name relative to ``root_url``

        Returns:
            The queued task, whose callbacks can then be set
        """
        task = MeshAssetTask(task_name, meshes_names, root_url, scene_filename)
        self._tasks.append(task)
        return task

    def reset(self) -> None:
        """Drop every queued task."""
        self._tasks = []

    async def load_async(self) -> List[MeshAssetTask]:
        """
        Run every task still in its initial state concurrently.

        Resolves once each of them is done or failed.

        Returns:
            The tasks that were run
        """
        pending = [task for task in self._tasks if task.task_state is AssetTaskState.INIT]
        logger.debug(f"Running {len(pending)} asset tasks")

        outcomes = await asyncio.gather(
            *(task.run(self.scene, self.importer) for task in pending),
            return_exceptions=True,
        )
        for task, outcome in zip(pending, outcomes):
            if isinstance(outcome, Exception):
                # Raised by an error callback; the task itself already failed
                logger.error(f"Error callback of {task.name} raised: {outcome}")

        failed = sum(1 for task in pending if task.task_state is AssetTaskState.ERROR)
        logger.info(f"Asset tasks finished: {len(pending) - failed} loaded, {failed} failed")
        return pending
