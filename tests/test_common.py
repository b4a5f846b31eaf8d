"""
Unit tests for shared math and URL helpers.
"""

import unittest
import numpy as np

from glbavatar.common import (
    ResourceUrl,
    compose_matrix,
    quaternion_multiply,
    rotate_vector,
    split_url,
    transform_points,
)

S = np.sqrt(0.5)
YAW_90 = np.array([0.0, S, 0.0, S])    # 90 degrees about +Y, XYZW
PITCH_90 = np.array([S, 0.0, 0.0, S])  # 90 degrees about +X, XYZW


class TestSplitUrl(unittest.TestCase):
    """Test splitting URLs into root and file name."""

    def test_nested_path(self):
        self.assertEqual(split_url("a/b/c.glb"), ResourceUrl(root_url="a/b/", filename="c.glb"))

    def test_bare_filename(self):
        self.assertEqual(split_url("c.glb"), ResourceUrl(root_url="", filename="c.glb"))

    def test_http_url(self):
        result = split_url("https://cdn.example.com/avatars/robot.glb")
        self.assertEqual(result.root_url, "https://cdn.example.com/avatars/")
        self.assertEqual(result.filename, "robot.glb")

    def test_trailing_separator(self):
        self.assertEqual(split_url("assets/"), ResourceUrl("assets/", ""))

    def test_reconstructs_original(self):
        """root_url + filename is always the input."""
        for url in ["", "/", "x", "/x.glb", "a//b.glb", "http://h/p/q.gltf", "dir/sub/"]:
            with self.subTest(url=url):
                root, name = split_url(url)
                self.assertEqual(root + name, url)
                self.assertTrue(root == "" or root.endswith("/"))
                self.assertNotIn("/", name)


class TestQuaternionMath(unittest.TestCase):
    """Test quaternion composition and vector rotation."""

    def test_multiply_identity(self):
        identity = np.array([0, 0, 0, 1.0])
        np.testing.assert_allclose(quaternion_multiply(identity, PITCH_90), PITCH_90)
        np.testing.assert_allclose(quaternion_multiply(PITCH_90, identity), PITCH_90)

    def test_yaw_composed_with_pitch(self):
        """R * Q for a 90 degree yaw R and a 90 degree pitch Q."""
        result = quaternion_multiply(YAW_90, PITCH_90)
        np.testing.assert_allclose(result, [0.5, 0.5, -0.5, 0.5], atol=1e-12)

    def test_multiplication_order_matters(self):
        a = quaternion_multiply(YAW_90, PITCH_90)
        b = quaternion_multiply(PITCH_90, YAW_90)
        self.assertFalse(np.allclose(a, b))

    def test_product_applies_right_operand_first(self):
        """Rotating by R * Q equals rotating by Q, then by R."""
        v = np.array([0.3, -1.2, 2.0])
        combined = rotate_vector(v, quaternion_multiply(YAW_90, PITCH_90))
        sequential = rotate_vector(rotate_vector(v, PITCH_90), YAW_90)
        np.testing.assert_allclose(combined, sequential, atol=1e-12)

    def test_rotate_vector_yaw(self):
        np.testing.assert_allclose(rotate_vector([1, 0, 0], YAW_90), [0, 0, -1], atol=1e-12)

    def test_rotate_vector_pitch(self):
        np.testing.assert_allclose(rotate_vector([0, 1, 0], PITCH_90), [0, 0, 1], atol=1e-12)


class TestMatrices(unittest.TestCase):
    """Test TRS composition."""

    def test_compose_and_transform(self):
        matrix = compose_matrix(np.array([1.0, 2.0, 3.0]), YAW_90, np.array([2.0, 1.0, 1.0]))
        points = transform_points(matrix, [[1, 0, 0], [0, 1, 0]])
        # scale (2,1,1) -> yaw 90 -> translate
        np.testing.assert_allclose(points[0], [1, 2, 1], atol=1e-12)
        np.testing.assert_allclose(points[1], [1, 3, 3], atol=1e-12)


if __name__ == '__main__':
    unittest.main()
