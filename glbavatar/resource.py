"""
Avatar and scene asset loading.

``ResourceManager`` drives the importer for one scene:

- avatars always resolve to a mesh; import failures are logged and
  replaced by a shared-material placeholder sphere
- avatar animations are imported and retargeted onto the avatar rig frame;
  failures propagate to the caller
- static scene objects are loaded in batches and classified by name
"""

import logging
import uuid
import numpy as np
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .common import ResourceUrl, split_url
from .config import LoaderConfig
from .exceptions import AnimationError, MeshError
from .importer import AssetFetcher, SceneImporter
from .retargeter import AnimationRetargeter
from .scene import AnimationGroup, Material, Mesh, Node, Scene, create_sphere
from .tasks import AssetsManager, MeshAssetTask

logger = logging.getLogger(__name__)


@dataclass
class AvatarAnimationResult:
    """Reference mesh plus the retargeted animation groups the caller now owns."""
    mesh: Node
    animation_groups: List[AnimationGroup] = field(default_factory=list)


@dataclass
class AvatarLoadResult:
    """
    Outcome of an avatar load.

    ``recovered`` is True when ``mesh`` is the placeholder substituted for
    a failed import; ``error`` then holds the import failure.
    """
    mesh: Mesh
    recovered: bool = False
    error: Optional[BaseException] = None


class ResourceManager:
    """
    Loads avatars, avatar animations and scene objects into a scene.
    """

    def __init__(self, scene: Scene, config: Optional[LoaderConfig] = None,
                 importer: Optional[SceneImporter] = None):
        """
        Args:
            scene: Scene receiving every loaded resource
            config: Loading conventions (defaults to :class:`LoaderConfig`)
            importer: glTF importer; a default one is created when omitted
        """
        self.scene = scene
        self.config = config or LoaderConfig()
        if importer is None:
            importer = SceneImporter(AssetFetcher(timeout=self.config.fetch_timeout))
        self.importer = importer
        self.assets_manager = AssetsManager(scene, importer)
        self.retargeter = AnimationRetargeter(self.config.root_bone_name)

    @staticmethod
    def split_url(url: str) -> ResourceUrl:
        return split_url(url)

    async def load_my_avatar(self, model_url: str) -> Mesh:
        """Load the locally controlled avatar; same contract as :meth:`load_avatar`."""
        return (await self.load_avatar_result(model_url)).mesh

    async def load_avatar(self, model_url: str) -> Mesh:
        """
        Load an avatar mesh.

        Never raises for import failures: the placeholder sphere is
        returned instead.
        """
        return (await self.load_avatar_result(model_url)).mesh

    async def load_avatar_result(self, model_url: str) -> AvatarLoadResult:
        """
        Load an avatar mesh, reporting whether the placeholder was used.

        Args:
            model_url: Path or URL of the avatar asset

        Returns:
            AvatarLoadResult with the primary mesh or the placeholder
        """
        result = None
        try:
            result = await self.importer.import_meshes(model_url, self.scene)
            if not result.meshes:
                raise MeshError(f"No mesh imported from {model_url}")

            for mesh in result.meshes:
                mesh.is_pickable = False

            mesh = result.meshes[0]
            mesh.id = str(uuid.uuid4())
            mesh.scaling = (1.0, 1.0, 1.0)
            mesh.check_collisions = True
            self._center_pivot(mesh)

            logger.info(f"Load avatar mesh url:{model_url} id:{mesh.id}")
            return AvatarLoadResult(mesh)

        except Exception as e:
            logger.error(f"Failed to load avatar {model_url}: {e}")
            if result is not None:
                self._release(result)
            return AvatarLoadResult(self._create_dummy_mesh(), recovered=True, error=e)

    async def load_avatar_animations(self, model_url: str) -> AvatarAnimationResult:
        """
        Import the animations at ``model_url`` and retarget them onto the rig.

        The reference mesh is the first child of the import's root wrapper;
        the wrapper itself is disposed once the reference is extracted.

        Raises:
            ImporterError: If the asset cannot be imported
            AnimationError: If the asset has no rig node under its root or a
                curve cannot be retargeted
        """
        logger.info(f"Load avatar animation url:{model_url}")

        result = await self.importer.import_meshes(model_url, self.scene)
        if not result.meshes:
            raise MeshError(f"No mesh imported from {model_url}")

        root = result.meshes[0]
        children = root.get_children()
        if not children:
            self._release(result)
            raise AnimationError(f"No rig node found under the root of {model_url}")

        mesh = children[0]
        try:
            animation_groups = self.retargeter.retarget(result.animation_groups, mesh, self.scene)
        except Exception:
            self._release(result)
            raise

        # Keep the rig alive as part of the result; the wrapper goes
        mesh.set_parent(None)
        root.dispose()

        return AvatarAnimationResult(mesh=mesh, animation_groups=animation_groups)

    def add_scene_object_tasks(self, task_name: str, root_url: str, filenames: Sequence[str]) -> List[MeshAssetTask]:
        """
        Queue one mesh task per file; run them with :meth:`load_async`.

        Args:
            task_name: Name given to every task of the batch
            root_url: Directory URL the file names are relative to
            filenames: Asset file names

        Returns:
            The queued tasks
        """
        tasks = []
        for filename in filenames:
            task = self.assets_manager.add_mesh_task(task_name, '', root_url, filename)
            task.on_success = self._on_scene_object_loaded
            task.on_error = self._on_scene_object_failed
            tasks.append(task)
        return tasks

    async def load_async(self) -> List[MeshAssetTask]:
        """Run every queued scene object task; resolves when all have settled."""
        return await self.assets_manager.load_async()

    @staticmethod
    def _release(result) -> None:
        """Dispose everything an import created."""
        for group in result.animation_groups:
            group.dispose()
        if result.meshes:
            result.meshes[0].dispose()

    def _on_scene_object_loaded(self, task: MeshAssetTask) -> None:
        for mesh in task.loaded_meshes:
            self._process_scene_mesh(mesh)
        logger.info(f"load scene object: {task.url}")

    @staticmethod
    def _on_scene_object_failed(task: MeshAssetTask, message: str,
                                exception: Optional[BaseException]) -> None:
        logger.error(f"fail to load scene object: {task.url} ({exception})")

    def _center_pivot(self, mesh: Mesh) -> None:
        """Move the mesh so its hierarchy's bounding centre sits at the pivot offset."""
        minimum, maximum = mesh.get_hierarchy_bounding_vectors(True)
        pivot = (maximum + minimum) * -0.5
        pivot += np.asarray(self.config.pivot_offset, dtype=np.float64)
        mesh.position = pivot

    def _create_dummy_mesh(self) -> Mesh:
        mesh = create_sphere(
            self.config.fallback_mesh_name,
            diameter=self.config.fallback_diameter,
            scene=self.scene,
        )
        mesh.is_pickable = False
        mesh.material = self.scene.get_or_create_material(
            self.config.fallback_material_name,
            lambda name: Material.solid(name, self.config.fallback_color),
        )
        return mesh

    def _process_scene_mesh(self, mesh: Mesh) -> None:
        mesh.id = str(uuid.uuid4())
        self.apply_scene_mesh_rule(mesh, self.config)

    @staticmethod
    def apply_scene_mesh_rule(mesh: Mesh, config: Optional[LoaderConfig] = None) -> None:
        """
        Classify a static scene mesh by name.

        Collision meshes are hidden. Floor collision meshes become pickable
        for ground probing; the others block movement.
        """
        config = config or LoaderConfig()
        mesh.is_pickable = False
        mesh.check_collisions = False

        if config.collision_marker in mesh.name:
            if config.floor_marker in mesh.name:
                mesh.is_pickable = True
            else:
                mesh.check_collisions = True
            mesh.is_visible = False
