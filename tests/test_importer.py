"""
Unit tests for the importer module.
"""

import shutil
import tempfile
import unittest
from pathlib import Path

import httpx
import numpy as np

from glb_factory import BOX_VERTICES, GLBBuilder, build_rigged_avatar
from glbavatar.exceptions import AssetFetchError, GLBParseError
from glbavatar.importer import AssetFetcher, GLBParser, SceneImporter
from glbavatar.importer.fetch import is_remote_url, url_to_path
from glbavatar.importer.glb.parser import decompose_matrix
from glbavatar.resource import ResourceManager
from glbavatar.scene import Scene
from glbavatar.tasks import AssetTaskState

S = np.sqrt(0.5)


class TestFetchHelpers(unittest.TestCase):

    def test_is_remote_url(self):
        self.assertTrue(is_remote_url('https://example.com/a.glb'))
        self.assertTrue(is_remote_url('HTTP://example.com/a.glb'))
        self.assertFalse(is_remote_url('assets/a.glb'))
        self.assertFalse(is_remote_url('file:///tmp/a.glb'))

    def test_url_to_path(self):
        self.assertEqual(url_to_path('file:///tmp/a.glb'), Path('/tmp/a.glb'))
        self.assertEqual(url_to_path('assets/a.glb'), Path('assets/a.glb'))


class TestAssetFetcher(unittest.IsolatedAsyncioTestCase):
    """Test fetching bytes over HTTP and from disk."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    async def test_local_file(self):
        path = Path(self.temp_dir) / 'data.bin'
        path.write_bytes(b'abc')
        self.assertEqual(await AssetFetcher().fetch(str(path)), b'abc')
        self.assertEqual(await AssetFetcher().fetch(path.as_uri()), b'abc')

    async def test_missing_local_file(self):
        with self.assertRaises(AssetFetchError):
            await AssetFetcher().fetch(str(Path(self.temp_dir) / 'missing.glb'))

    async def test_http(self):
        def handler(request):
            if request.url.path == '/a.glb':
                return httpx.Response(200, content=b'payload')
            return httpx.Response(404)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            fetcher = AssetFetcher(client=client)
            self.assertEqual(await fetcher.fetch('https://cdn.example.com/a.glb'), b'payload')
            with self.assertRaises(AssetFetchError):
                await fetcher.fetch('https://cdn.example.com/missing.glb')

    async def test_http_transport_error(self):
        def handler(request):
            raise httpx.ConnectError('connection refused', request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            with self.assertRaises(AssetFetchError):
                await AssetFetcher(client=client).fetch('https://cdn.example.com/a.glb')


class TestGLBParser(unittest.TestCase):
    """Test the parser on generated documents."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_parse_glb(self):
        path = build_rigged_avatar().save_glb(Path(self.temp_dir) / 'avatar.glb')
        parser = GLBParser.from_bytes(Path(path).read_bytes(), path)

        self.assertEqual(parser.get_scene_root_nodes(), [0])
        self.assertEqual(parser.get_node_info(1)['name'], 'Hips')
        self.assertEqual(parser.external_buffer_uris(), {})

        primitives = parser.get_mesh_primitives(0)
        self.assertEqual(len(primitives), 1)
        np.testing.assert_allclose(np.asarray(primitives[0]['positions']).reshape(-1, 3), BOX_VERTICES)
        self.assertEqual(np.asarray(primitives[0]['indices']).size, 36)

        anim = parser.get_animation_data(0)
        self.assertEqual(anim['name'], 'Walk')
        self.assertEqual(len(anim['channels']), 5)
        self.assertAlmostEqual(anim['duration'], 1.0)

    def test_garbage_raises(self):
        with self.assertRaises(GLBParseError):
            GLBParser.from_bytes(b'not a gltf document', 'garbage.glb')

    def test_truncated_glb_raises(self):
        with self.assertRaises(GLBParseError):
            GLBParser.from_bytes(b'glTF\x02\x00\x00\x00', 'truncated.glb')

    def test_node_defaults(self):
        builder = GLBBuilder()
        builder.add_node('Empty')
        parser = GLBParser.from_bytes(builder.to_gltf_json_bytes())
        info = parser.get_node_info(0)
        self.assertEqual(list(info['translation']), [0, 0, 0])
        self.assertEqual(list(info['rotation']), [0, 0, 0, 1])
        self.assertEqual(list(info['scale']), [1, 1, 1])

    def test_decompose_matrix(self):
        matrix = np.eye(4)
        # 90 degrees about Y, scaled by 2, translated
        matrix[:3, :3] = np.array([[0, 0, 1], [0, 1, 0], [-1, 0, 0]]) * 2.0
        matrix[:3, 3] = [1, 2, 3]
        translation, rotation, scale = decompose_matrix(matrix)
        np.testing.assert_allclose(translation, [1, 2, 3])
        np.testing.assert_allclose(scale, [2, 2, 2])
        np.testing.assert_allclose(rotation, [0, S, 0, S], atol=1e-12)


class TestSceneImporter(unittest.IsolatedAsyncioTestCase):
    """Test building scene objects from assets."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.scene = Scene('test')

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def check_rigged_avatar(self, result):
        root = result.meshes[0]
        self.assertEqual(root.name, '__root__')
        np.testing.assert_allclose(root.rotation_quaternion, [0, 0, 0, 1])
        self.assertEqual([m.name for m in result.meshes], ['__root__', 'Body'])
        self.assertEqual([n.name for n in result.transform_nodes], ['Armature', 'Hips', 'Spine'])

        armature = root.get_children()[0]
        self.assertEqual(armature.name, 'Armature')
        self.assertEqual([c.name for c in armature.get_children()], ['Hips', 'Body'])
        np.testing.assert_allclose(result.transform_nodes[1].position, [0, 1, 0])

        body = result.meshes[1]
        self.assertEqual(body.get_total_vertices(), 8)
        self.assertEqual(body.faces.shape, (12, 3))

        self.assertEqual(len(result.animation_groups), 1)
        group = result.animation_groups[0]
        self.assertEqual(group.name, 'Walk')
        self.assertIn(group, self.scene.animation_groups)
        self.assertEqual(
            [ta.animation.target_property for ta in group.targeted_animations],
            ['position', 'rotationQuaternion', 'scaling', 'rotationQuaternion', 'position'],
        )
        self.assertEqual(group.targeted_animations[0].animation.name, 'Walk_channel0')
        self.assertIs(group.targeted_animations[3].target, result.transform_nodes[2])
        self.assertEqual(group.to_frame, 1.0)

    async def test_import_glb(self):
        path = build_rigged_avatar().save_glb(Path(self.temp_dir) / 'avatar.glb')
        result = await SceneImporter().import_meshes(path, self.scene)
        self.check_rigged_avatar(result)

    async def test_import_gltf_with_external_buffer(self):
        path = build_rigged_avatar().save_gltf_with_external_buffer(
            Path(self.temp_dir) / 'avatar.gltf', 'avatar.bin')
        result = await SceneImporter().import_meshes(path, self.scene)
        self.check_rigged_avatar(result)

    async def test_import_over_http(self):
        builder = build_rigged_avatar()
        gltf_path = builder.save_gltf_with_external_buffer(Path(self.temp_dir) / 'avatar.gltf', 'avatar.bin')
        files = {
            '/models/avatar.gltf': Path(gltf_path).read_bytes(),
            '/models/avatar.bin': (Path(self.temp_dir) / 'avatar.bin').read_bytes(),
        }
        requested = []

        def handler(request):
            requested.append(request.url.path)
            if request.url.path in files:
                return httpx.Response(200, content=files[request.url.path])
            return httpx.Response(404)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            importer = SceneImporter(AssetFetcher(client=client))
            result = await importer.import_meshes('https://cdn.example.com/models/avatar.gltf', self.scene)

        self.check_rigged_avatar(result)
        self.assertEqual(requested, ['/models/avatar.gltf', '/models/avatar.bin'])

    async def test_import_missing_external_buffer(self):
        path = build_rigged_avatar().save_gltf_with_external_buffer(
            Path(self.temp_dir) / 'avatar.gltf', 'avatar.bin')
        (Path(self.temp_dir) / 'avatar.bin').unlink()
        with self.assertRaises(AssetFetchError):
            await SceneImporter().import_meshes(path, self.scene)

    async def test_import_missing_file(self):
        with self.assertRaises(AssetFetchError):
            await SceneImporter().import_meshes(str(Path(self.temp_dir) / 'none.glb'), self.scene)

    async def test_meshes_names_filter(self):
        builder = GLBBuilder()
        builder.add_node('Chair', vertices=BOX_VERTICES)
        builder.add_node('Table', vertices=BOX_VERTICES)
        path = Path(self.temp_dir) / 'room.gltf'
        path.write_bytes(builder.to_gltf_json_bytes())

        result = await SceneImporter().import_meshes(str(path), self.scene, ['Table'])
        self.assertEqual([m.name for m in result.meshes], ['__root__', 'Table'])

        result = await SceneImporter().import_meshes(str(path), self.scene, 'Chair')
        self.assertEqual([m.name for m in result.meshes], ['__root__', 'Chair'])


class TestFailedImportCleanup(unittest.IsolatedAsyncioTestCase):
    """A document that fails partway leaves nothing registered in the scene."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.scene = Scene('test')
        builder = build_rigged_avatar()
        builder.gltf.animations[0].samplers[0].output = 999
        self.path = builder.save_glb(Path(self.temp_dir) / 'broken.glb')

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def assert_scene_empty(self, meshes=()):
        self.assertEqual([m.name for m in self.scene.meshes], list(meshes))
        self.assertEqual(self.scene.transform_nodes, [])
        self.assertEqual(self.scene.animation_groups, [])

    async def test_importer_discards_partial_build(self):
        with self.assertRaises(GLBParseError):
            await SceneImporter().import_meshes(self.path, self.scene)
        self.assert_scene_empty()

    async def test_avatar_placeholder_is_the_only_mesh(self):
        manager = ResourceManager(self.scene)
        with self.assertLogs('glbavatar.resource', level='ERROR'):
            result = await manager.load_avatar_result(self.path)
        self.assertTrue(result.recovered)
        self.assertIsInstance(result.error, GLBParseError)
        self.assert_scene_empty(['DummyMesh'])

    async def test_failed_scene_object_task(self):
        manager = ResourceManager(self.scene)
        root_url, filename = manager.split_url(self.path)
        tasks = manager.add_scene_object_tasks('scene', root_url, [filename])

        with self.assertLogs('glbavatar.resource', level='ERROR'):
            await manager.load_async()

        self.assertIs(tasks[0].task_state, AssetTaskState.ERROR)
        self.assertEqual(tasks[0].loaded_meshes, [])
        self.assert_scene_empty()


class TestResourceManagerEndToEnd(unittest.IsolatedAsyncioTestCase):
    """Load generated assets through the public API."""

    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.scene = Scene('test')

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    async def test_load_avatar(self):
        path = build_rigged_avatar().save_glb(Path(self.temp_dir) / 'avatar.glb')
        manager = ResourceManager(self.scene)

        result = await manager.load_avatar_result(path)

        self.assertFalse(result.recovered)
        np.testing.assert_allclose(result.mesh.position, [0, -1.1, 0], atol=1e-6)
        self.assertTrue(result.mesh.check_collisions)

    async def test_load_missing_avatar(self):
        manager = ResourceManager(self.scene)
        with self.assertLogs('glbavatar.resource', level='ERROR'):
            result = await manager.load_avatar_result(str(Path(self.temp_dir) / 'none.glb'))
        self.assertTrue(result.recovered)
        self.assertEqual(result.mesh.name, 'DummyMesh')

    async def test_load_avatar_animations(self):
        builder = build_rigged_avatar(armature_rotation=[0, S, 0, S], armature_scale=[2, 2, 2])
        path = builder.save_glb(Path(self.temp_dir) / 'walk.glb')
        manager = ResourceManager(self.scene)

        result = await manager.load_avatar_animations(path)

        self.assertEqual(result.mesh.name, 'Armature')
        group = result.animation_groups[0]
        self.assertEqual(
            [(ta.target.name, ta.animation.target_property) for ta in group.targeted_animations],
            [('Hips', 'position'), ('Hips', 'rotationQuaternion'), ('Spine', 'rotationQuaternion')],
        )
        keys = group.targeted_animations[0].animation.get_keys()
        # (1, 1, 0) yawed 90 degrees is (0, 1, -1), then scaled by 2
        np.testing.assert_allclose(keys[1].value, [0, 2, -2], atol=1e-5)
        self.assertEqual(self.scene.animation_groups, [])


if __name__ == '__main__':
    unittest.main()
