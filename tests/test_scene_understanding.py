"""
Unit Tests for Wall Plane Detection

This module tests point cloud construction from inverse depth, minimal sample
drawing, RANSAC plane estimation, wall classification and the debug overlays.
"""

import cv2
import pytest
import torch
import numpy as np
import logging
from pathlib import Path
from typing import List
import sys

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from depth_wall_detection.errors import InputShapeError, InvalidIntrinsicsError
from depth_wall_detection.scene_understanding.plane_detector import (
    PlaneDetector, RANSACPlaneEstimator, find_planes_ransac
)
from depth_wall_detection.scene_understanding.plane_models import (
    Plane, PointCloud, EstimationStatus, PlaneType, WallDirection, VerticalAxis,
    PlaneDetectionConfig, PointCloudConfig, WallClassificationConfig
)
from depth_wall_detection.scene_understanding.geometry_utils import (
    GeometryUtils, CameraParameters, CameraProjection
)
from depth_wall_detection.scene_understanding.sampling import (
    RandomSource, TorchRandomSource, sample_distinct_triple
)
from depth_wall_detection.scene_understanding.wall_classifier import WallClassifier
from depth_wall_detection.scene_understanding.visualization import PlaneVisualizer, OverlayWriter
from depth_wall_detection.scene_understanding.depth_analyzer import DepthAnalyzer

# Set up logging for tests
logging.basicConfig(level=logging.INFO)


class ScriptedRandomSource(RandomSource):
    """Random source replaying a fixed list of values."""

    def __init__(self, values: List[int]):
        self.values = list(values)
        self.calls = 0

    def randint(self, high: int) -> int:
        value = self.values[self.calls]
        self.calls += 1
        assert 0 <= value < high
        return value


def make_cloud(points: torch.Tensor) -> PointCloud:
    """Wrap raw points in a single-row point cloud."""
    return PointCloud(
        points=points.to(torch.float32),
        pixel_indices=torch.arange(len(points)),
        width=len(points),
        height=1
    )


def make_plane_scene(plane: List[float], num_outliers: int = 40, seed: int = 1):
    """Points on a plane (10x10 grid) plus outliers at least 0.5 away from it."""
    equation = torch.tensor(plane, dtype=torch.float64)
    norm = torch.linalg.norm(equation[:3])
    normal, offset = equation[:3] / norm, equation[3] / norm

    helper = torch.tensor([1.0, 0.0, 0.0], dtype=torch.float64)
    if abs(normal[0]) > 0.9:
        helper = torch.tensor([0.0, 1.0, 0.0], dtype=torch.float64)
    tangent_u = torch.linalg.cross(normal, helper)
    tangent_u = tangent_u / torch.linalg.norm(tangent_u)
    tangent_w = torch.linalg.cross(normal, tangent_u)

    origin = -offset * normal
    steps = torch.linspace(-2.0, 2.0, 10, dtype=torch.float64)
    on_plane = torch.stack([
        origin + s * tangent_u + t * tangent_w for s in steps for t in steps
    ])

    generator = torch.Generator().manual_seed(seed)
    candidates = (torch.rand((400, 3), generator=generator, dtype=torch.float64) - 0.5) * 6.0 + origin
    distances = torch.abs(candidates @ normal + offset)
    outliers = candidates[distances > 0.5][:num_outliers]
    assert len(outliers) == num_outliers

    points = torch.cat([on_plane, outliers]).to(torch.float32)
    return points, len(on_plane), normal.to(torch.float32), float(offset)


class TestGeometryUtils:
    """Test geometric utility functions."""

    def test_plane_from_points(self):
        """Test plane through three points at z=2."""
        p1 = torch.tensor([0.0, 0.0, 2.0])
        p2 = torch.tensor([1.0, 0.0, 2.0])
        p3 = torch.tensor([0.0, 1.0, 2.0])

        normal, offset = GeometryUtils.plane_from_points(p1, p2, p3)

        assert torch.allclose(normal, torch.tensor([0.0, 0.0, 1.0]), atol=1e-6)
        assert offset == pytest.approx(-2.0)

    def test_plane_from_degenerate_points(self):
        """Collinear and coincident triples define no plane."""
        p1 = torch.tensor([0.0, 0.0, 1.0])
        p2 = torch.tensor([1.0, 1.0, 1.0])
        p3 = torch.tensor([2.0, 2.0, 1.0])

        assert GeometryUtils.plane_from_points(p1, p2, p3) is None
        assert GeometryUtils.plane_from_points(p1, p1, p2) is None
        assert GeometryUtils.plane_from_points(p1, p1, p1) is None

    def test_point_to_plane_distance(self):
        """Distances are unsigned."""
        normal = torch.tensor([0.0, 0.0, 1.0])
        points = torch.tensor([
            [0.0, 0.0, 3.0],   # 1 unit in front
            [0.0, 0.0, 0.0],   # 2 units behind
            [5.0, -1.0, 2.0]   # On plane
        ])

        distances = GeometryUtils.point_to_plane_distance(points, normal, -2.0)

        assert torch.allclose(distances, torch.tensor([1.0, 2.0, 0.0]), atol=1e-6)

    def test_count_inliers_is_strict(self):
        """Points exactly at the threshold are not inliers."""
        normal = torch.tensor([0.0, 0.0, 1.0])
        points = torch.tensor([
            [0.0, 0.0, 2.0],
            [0.0, 0.0, 2.25],
            [0.0, 0.0, 2.5],
            [0.0, 0.0, 1.5]
        ])

        assert GeometryUtils.count_inliers(points, normal, -2.0, 0.5) == 2


class TestCameraProjection:
    """Test inverse depth back-projection."""

    def setup_method(self):
        """Set up a 4x4 camera."""
        self.camera_params = CameraParameters(fx=4.0, fy=4.0, cx=2.0, cy=2.0)
        self.projection = CameraProjection(self.camera_params)

    def test_constant_grid(self):
        """A constant grid gives a fronto-parallel plane of points."""
        grid = torch.full((16,), 0.5)

        cloud = self.projection.inverse_depth_to_point_cloud(grid, 4, 4)

        assert len(cloud) == 16
        assert torch.equal(cloud.pixel_indices, torch.arange(16))
        assert torch.allclose(cloud.points[:, 2], torch.full((16,), 2.0))

        # Pixel (u=0, v=0): X = (0 - 2) * 2 / 4, Y flipped to point up
        assert torch.allclose(cloud.points[0], torch.tensor([-1.0, 1.0, 2.0]))
        # Pixel (u=3, v=1)
        assert torch.allclose(cloud.points[7], torch.tensor([0.5, 0.5, 2.0]))

    def test_vertical_axis_down(self):
        """Image convention keeps Y growing downwards."""
        projection = CameraProjection(
            self.camera_params, PointCloudConfig(vertical_axis=VerticalAxis.DOWN)
        )

        cloud = projection.inverse_depth_to_point_cloud(torch.full((16,), 0.5), 4, 4)

        assert torch.allclose(cloud.points[0], torch.tensor([-1.0, -1.0, 2.0]))

    def test_invalid_cells_are_skipped(self):
        """Non-positive, non-finite and too distant cells are dropped."""
        grid = torch.full((16,), 0.5)
        grid[1] = 0.0
        grid[5] = -1.0
        grid[6] = float('nan')
        grid[9] = 1e-4  # Z = 10000, beyond the depth ceiling

        cloud = self.projection.inverse_depth_to_point_cloud(grid, 4, 4)

        expected = [i for i in range(16) if i not in (1, 5, 6, 9)]
        assert cloud.pixel_indices.tolist() == expected
        assert len(cloud) == 12

    def test_all_invalid_grid_is_empty(self):
        """Grids below the validity epsilon give an empty cloud."""
        grid = torch.tensor([0.0, -0.5, 1e-7, 0.0] * 4)

        cloud = self.projection.inverse_depth_to_point_cloud(grid, 4, 4)

        assert cloud.is_empty
        assert cloud.points.shape == (0, 3)

    def test_two_dimensional_grid(self):
        """(H, W) grids are accepted."""
        grid = np.full((2, 3), 0.25, dtype=np.float32)

        cloud = self.projection.inverse_depth_to_point_cloud(grid, 3, 2)

        assert len(cloud) == 6
        assert cloud.width == 3 and cloud.height == 2

    def test_read_only_buffer_is_not_modified(self):
        """The caller's buffer is read, never written."""
        grid = np.linspace(0.1, 1.0, 16, dtype=np.float32)
        original = grid.copy()
        grid.flags.writeable = False

        cloud = self.projection.inverse_depth_to_point_cloud(grid, 4, 4)

        assert len(cloud) == 16
        assert np.array_equal(grid, original)

    def test_grid_size_must_be_integer(self):
        """Float sizes are rejected, numpy integers are accepted."""
        with pytest.raises(InputShapeError):
            self.projection.inverse_depth_to_point_cloud(torch.ones(16), 4.0, 4.0)

        with pytest.raises(InputShapeError):
            CameraProjection.prepare_depth_grid(torch.ones(16), 4, 4.0)

        cloud = self.projection.inverse_depth_to_point_cloud(torch.ones(16), np.int64(4), np.int32(4))
        assert len(cloud) == 16
        assert cloud.width == 4 and isinstance(cloud.width, int)

    def test_shape_errors(self):
        """Malformed buffers are rejected before processing."""
        with pytest.raises(InputShapeError):
            self.projection.inverse_depth_to_point_cloud(torch.ones(15), 4, 4)

        with pytest.raises(InputShapeError):
            self.projection.inverse_depth_to_point_cloud(torch.ones(16), 0, 4)

        with pytest.raises(InputShapeError):
            self.projection.inverse_depth_to_point_cloud(None, 4, 4)

        with pytest.raises(InputShapeError):
            self.projection.inverse_depth_to_point_cloud(torch.ones(2, 8), 4, 4)

    def test_zero_focal_length(self):
        """Zero focal length cannot be used as a denominator."""
        projection = CameraProjection(CameraParameters(fx=0.0, fy=4.0, cx=2.0, cy=2.0))

        with pytest.raises(InvalidIntrinsicsError):
            projection.inverse_depth_to_point_cloud(torch.ones(16), 4, 4)

    def test_point_cloud_select(self):
        """Filtered clouds keep their pixel mapping."""
        cloud = self.projection.inverse_depth_to_point_cloud(torch.full((16,), 0.5), 4, 4)

        subset = cloud.select(cloud.points[:, 0] > 0)

        assert subset.pixel_indices.tolist() == [3, 7, 11, 15]
        assert subset.pixel_mask().sum().item() == 4
        assert subset.pixel_mask()[0, 3]

    def test_from_matrix(self):
        """Parameters can be read from an intrinsics matrix."""
        params = CameraParameters.from_matrix(self.camera_params.get_intrinsics_matrix())

        assert params == self.camera_params


class TestSampling:
    """Test minimal sample drawing."""

    def test_triples_are_distinct(self):
        """Triples are distinct and in range."""
        source = TorchRandomSource(seed=3)

        for _ in range(200):
            triple = sample_distinct_triple(source, 4)
            assert len(set(triple)) == 3
            assert all(0 <= index < 4 for index in triple)

    def test_collisions_are_redrawn(self):
        """Colliding indices are redrawn from the source."""
        source = ScriptedRandomSource([0, 0, 1, 1, 2])

        assert sample_distinct_triple(source, 5) == (0, 1, 2)
        assert source.calls == 5

    def test_retry_cap_falls_back_to_draw_without_replacement(self):
        """Exhausted retries still give a distinct triple."""
        source = ScriptedRandomSource([3, 3, 3, 0, 0])

        assert sample_distinct_triple(source, 5, max_retries=0) == (3, 0, 1)

    def test_constant_source_terminates(self):
        """A source that always collides cannot loop forever."""

        class ZeroSource(RandomSource):
            def randint(self, high: int) -> int:
                return 0

        assert sample_distinct_triple(ZeroSource(), 3, max_retries=5) == (0, 1, 2)

    def test_too_few_points(self):
        """Clouds smaller than three points cannot be sampled."""
        with pytest.raises(ValueError):
            sample_distinct_triple(TorchRandomSource(seed=0), 2)

    def test_seeded_sources_repeat(self):
        """Same seed, same stream."""
        first = TorchRandomSource(seed=11)
        second = TorchRandomSource(seed=11)

        assert [first.randint(1000) for _ in range(20)] == [second.randint(1000) for _ in range(20)]


class TestRANSACPlaneEstimator:
    """Test RANSAC plane estimation."""

    def setup_method(self):
        """Set up estimator configuration."""
        self.config = PlaneDetectionConfig(
            ransac_iterations=200,
            ransac_threshold=0.01,
            min_inliers=50,
            seed=7
        )
        self.estimator = RANSACPlaneEstimator(self.config)

    @pytest.mark.parametrize("plane", [
        [1.0, 2.0, 2.0, -9.0],
        [-1.0, -2.0, -2.0, 9.0],
        [1.0, 0.0, 0.0, 2.0],
        [0.0, 0.0, -1.0, 3.0],
    ])
    def test_recovers_known_plane(self, plane):
        """Inliers and normal of a synthetic plane with outliers are recovered."""
        points, num_on_plane, normal, offset = make_plane_scene(plane)

        result = self.estimator.estimate(make_cloud(points))

        assert result.status == EstimationStatus.PLANE_FOUND
        assert len(result) == 1

        found = result.best_plane
        assert found.inlier_count == num_on_plane
        assert found.inlier_indices.tolist() == list(range(num_on_plane))

        sign = 1.0 if torch.dot(found.normal, normal) > 0 else -1.0
        assert torch.allclose(found.normal, sign * normal, atol=1e-3)
        assert found.d == pytest.approx(sign * offset, abs=1e-2)

    def test_inlier_indices_match_plane_distance(self):
        """Stored inlier pixels are exactly those within the threshold of the plane."""
        points, num_on_plane, _, _ = make_plane_scene([0.0, 1.0, 0.5, -1.0])
        cloud = make_cloud(points)

        plane = self.estimator.estimate(cloud).best_plane
        within = plane.distance_to_points(cloud.points) < self.config.ransac_threshold

        assert len(plane.inlier_indices) == plane.inlier_count == num_on_plane
        assert torch.equal(plane.inlier_indices, cloud.pixel_indices[within])

    def test_planes_compare_without_inlier_indices(self):
        """Equality uses the equation and labels, not the inlier pixels."""
        first = Plane(a=0.0, b=0.0, c=1.0, d=-2.0, inlier_count=3,
                      inlier_indices=torch.tensor([0, 1, 2]))
        second = Plane(a=0.0, b=0.0, c=1.0, d=-2.0, inlier_count=3,
                       inlier_indices=torch.tensor([4, 5, 6]))

        assert first == second
        assert first != Plane(a=0.0, b=0.0, c=1.0, d=-3.0, inlier_count=3)

    def test_point_clouds_compare_by_identity(self):
        """Comparing clouds never evaluates tensor truth values."""
        points = torch.zeros((3, 3))
        cloud = make_cloud(points)

        assert cloud == cloud
        assert cloud != make_cloud(points)

    def test_normal_is_unit_length(self):
        """Emitted normals have unit length."""
        points, _, _, _ = make_plane_scene([0.3, -0.4, 1.0, -2.0])

        result = self.estimator.estimate(make_cloud(points))

        assert result.best_plane.is_valid(self.config.min_inliers)
        assert torch.norm(result.best_plane.normal).item() == pytest.approx(1.0, abs=1e-5)

    def test_fixed_seed_is_deterministic(self):
        """Fixed seed and identical input give identical output."""
        points, _, _, _ = make_plane_scene([1.0, 2.0, 2.0, -9.0])
        # Loose threshold so several candidate planes compete
        config = PlaneDetectionConfig(ransac_iterations=30, ransac_threshold=0.6, min_inliers=1, seed=5)

        first = RANSACPlaneEstimator(config).estimate(make_cloud(points))
        second = RANSACPlaneEstimator(config).estimate(make_cloud(points))

        assert first.best_plane.to_dict() == second.best_plane.to_dict()
        assert torch.equal(first.best_plane.inlier_indices, second.best_plane.inlier_indices)

    def test_point_cloud_is_not_modified(self):
        """Estimation leaves the cloud untouched."""
        points, _, _, _ = make_plane_scene([1.0, 0.0, 0.0, 2.0])
        cloud = make_cloud(points)
        original = cloud.points.clone()

        self.estimator.estimate(cloud)

        assert torch.equal(cloud.points, original)

    @pytest.mark.parametrize("iterations", [1, 50, 1000])
    def test_min_inliers_above_cloud_size(self, iterations):
        """More required inliers than points is always empty."""
        points, _, _, _ = make_plane_scene([1.0, 2.0, 2.0, -9.0])
        config = PlaneDetectionConfig(
            ransac_iterations=iterations, ransac_threshold=0.01,
            min_inliers=len(points) + 1, seed=0
        )

        result = RANSACPlaneEstimator(config).estimate(make_cloud(points))

        assert result.is_empty
        assert result.status == EstimationStatus.INSUFFICIENT_DATA
        assert result.iterations == 0

    def test_fewer_than_three_points(self):
        """Two points can never define a plane."""
        config = PlaneDetectionConfig(ransac_iterations=10, min_inliers=0, seed=0)
        cloud = make_cloud(torch.tensor([[0.0, 0.0, 1.0], [1.0, 0.0, 1.0]]))

        result = RANSACPlaneEstimator(config).estimate(cloud)

        assert result.is_empty
        assert result.status == EstimationStatus.INSUFFICIENT_DATA

    def test_collinear_cloud_has_no_plane(self):
        """Degenerate samples are skipped, never emitted."""
        points = torch.stack([torch.tensor([t, 2.0 * t, 1.0]) for t in range(10)]).float()
        config = PlaneDetectionConfig(ransac_iterations=25, ransac_threshold=0.1, min_inliers=0, seed=0)

        result = RANSACPlaneEstimator(config).estimate(make_cloud(points))

        assert result.is_empty
        assert result.status == EstimationStatus.NO_QUALIFYING_PLANE
        assert result.degenerate_samples == 25

    def test_no_qualifying_plane(self):
        """Scattered points miss a high support requirement."""
        generator = torch.Generator().manual_seed(2)
        points = torch.rand((60, 3), generator=generator) * 10.0
        config = PlaneDetectionConfig(ransac_iterations=50, ransac_threshold=1e-3, min_inliers=40, seed=0)

        result = RANSACPlaneEstimator(config).estimate(make_cloud(points))

        assert result.is_empty
        assert result.status == EstimationStatus.NO_QUALIFYING_PLANE
        assert 3 <= result.best_inlier_count < 40

    def test_ties_keep_first_plane(self):
        """Equal support keeps the earlier candidate."""
        points = torch.tensor([
            [0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0],
            [0.0, 0.0, 10.0], [1.0, 0.0, 10.0], [0.0, 1.0, 10.0],
        ])
        config = PlaneDetectionConfig(ransac_iterations=2, ransac_threshold=0.1, min_inliers=3)
        estimator = RANSACPlaneEstimator(config)

        first = estimator.estimate(make_cloud(points), ScriptedRandomSource([0, 1, 2, 3, 4, 5]))
        second = estimator.estimate(make_cloud(points), ScriptedRandomSource([3, 4, 5, 0, 1, 2]))

        assert first.best_plane.inlier_count == 3
        assert first.best_plane.d == pytest.approx(0.0, abs=1e-6)
        assert abs(second.best_plane.d) == pytest.approx(10.0, abs=1e-5)

    def test_result_capacity(self):
        """Zero capacity drops the plane; larger capacity still yields one."""
        points, _, _, _ = make_plane_scene([1.0, 0.0, 0.0, 2.0])

        no_room = PlaneDetectionConfig(ransac_iterations=50, ransac_threshold=0.01, min_inliers=50,
                                       max_planes=0, seed=7)
        plenty = PlaneDetectionConfig(ransac_iterations=50, ransac_threshold=0.01, min_inliers=50,
                                      max_planes=5, seed=7)

        assert RANSACPlaneEstimator(no_room).estimate(make_cloud(points)).is_empty
        assert len(RANSACPlaneEstimator(plenty).estimate(make_cloud(points))) == 1

    def test_config_validation(self):
        """Invalid tuning values are rejected."""
        PlaneDetectionConfig().validate()

        with pytest.raises(ValueError):
            PlaneDetectionConfig(ransac_iterations=0).validate()

        with pytest.raises(ValueError):
            PlaneDetectionConfig(ransac_threshold=0.0).validate()

        with pytest.raises(ValueError):
            PlaneDetectionConfig(min_inliers=-1).validate()


class TestPlaneDetector:
    """Test the grid-to-plane entry points."""

    def setup_method(self):
        """Set up the 4x4 camera."""
        self.camera_params = CameraParameters(fx=4.0, fy=4.0, cx=2.0, cy=2.0)

    def test_constant_depth_scenario(self):
        """A constant 4x4 grid is one fronto-parallel plane of 16 inliers."""
        grid = np.full(16, 0.5, dtype=np.float32)

        result = find_planes_ransac(grid, 4, 4, 4.0, 4.0, 2.0, 2.0,
                                    distance_threshold=0.05, min_inliers=10,
                                    max_iterations=50, seed=42)

        assert len(result) == 1
        plane = result.best_plane
        assert plane.inlier_count == 16
        assert abs(plane.c) == pytest.approx(1.0, abs=1e-5)
        assert plane.a == pytest.approx(0.0, abs=1e-5)
        assert plane.b == pytest.approx(0.0, abs=1e-5)
        assert plane.d == pytest.approx(-2.0 * plane.c, abs=1e-5)

    def test_constant_depth_without_seed(self):
        """Unseeded runs find the same plane."""
        result = find_planes_ransac(np.full(16, 0.5, dtype=np.float32), 4, 4, 4.0, 4.0, 2.0, 2.0,
                                    distance_threshold=0.05, min_inliers=10, max_iterations=50)

        assert result.best_plane.inlier_count == 16

    def test_all_zero_grid(self):
        """A grid without valid depth is an empty result, not an error."""
        result = find_planes_ransac(np.zeros(16, dtype=np.float32), 4, 4, 4.0, 4.0, 2.0, 2.0,
                                    distance_threshold=0.05, min_inliers=10, max_iterations=50, seed=1)

        assert result.is_empty
        assert result.point_count == 0
        assert result.status == EstimationStatus.INSUFFICIENT_DATA

    def test_grid_below_epsilon(self):
        """Cells below the validity epsilon never form a plane."""
        grid = np.full(16, 1e-6, dtype=np.float32)

        result = find_planes_ransac(grid, 4, 4, 4.0, 4.0, 2.0, 2.0,
                                    distance_threshold=0.05, min_inliers=0, max_iterations=50, seed=1)

        assert result.is_empty
        assert result.point_count == 0

    def test_grid_is_not_modified(self):
        """Tensor grids are read-only inputs."""
        grid = torch.linspace(0.2, 0.8, 16)
        original = grid.clone()

        find_planes_ransac(grid, 4, 4, 4.0, 4.0, 2.0, 2.0,
                           distance_threshold=0.05, min_inliers=3, max_iterations=20, seed=1)

        assert torch.equal(grid, original)

    def test_repeated_calls_are_identical(self):
        """Fixed seed gives identical results call after call."""
        generator = torch.Generator().manual_seed(4)
        grid = torch.rand(64, generator=generator) + 0.1

        results = [
            find_planes_ransac(grid, 8, 8, 6.0, 6.0, 4.0, 4.0, distance_threshold=0.2,
                               min_inliers=1, max_iterations=40, seed=9)
            for _ in range(2)
        ]

        assert results[0].best_plane.to_dict() == results[1].best_plane.to_dict()

    def test_shape_mismatch_raises(self):
        """Buffers of the wrong length are rejected."""
        with pytest.raises(InputShapeError):
            find_planes_ransac(np.ones(15, dtype=np.float32), 4, 4, 4.0, 4.0, 2.0, 2.0,
                               distance_threshold=0.05, min_inliers=10, max_iterations=50)

    def test_zero_focal_length_raises(self):
        """fy = 0 is rejected."""
        with pytest.raises(InvalidIntrinsicsError):
            find_planes_ransac(np.ones(16, dtype=np.float32), 4, 4, 4.0, 0.0, 2.0, 2.0,
                               distance_threshold=0.05, min_inliers=10, max_iterations=50)

    def test_to_array(self):
        """Bridge record layout is [a, b, c, d, inliers]."""
        result = find_planes_ransac(np.full(16, 0.5, dtype=np.float32), 4, 4, 4.0, 4.0, 2.0, 2.0,
                                    distance_threshold=0.05, min_inliers=10, max_iterations=50, seed=42)

        record = result.best_plane.to_array()

        assert record.dtype == np.float32
        assert record.shape == (5,)
        assert record[4] == 16.0

    def test_detector_classifies_front_wall(self):
        """A constant-depth grid is a wall facing the camera."""
        detector = PlaneDetector(PlaneDetectionConfig(ransac_iterations=50, min_inliers=10, seed=42))

        result = detector.detect_planes(torch.full((4, 4), 0.5), 4, 4, self.camera_params)

        assert result.best_plane.plane_type == PlaneType.WALL
        assert result.best_plane.wall_direction == WallDirection.FRONT

    def test_detector_without_classification(self):
        """Classification can be switched off."""
        detector = PlaneDetector(
            PlaneDetectionConfig(ransac_iterations=50, min_inliers=10, seed=42),
            wall_config=WallClassificationConfig(enabled=False)
        )

        result = detector.detect_planes(torch.full((4, 4), 0.5), 4, 4, self.camera_params)

        assert result.best_plane.plane_type == PlaneType.UNKNOWN

    def test_detector_with_injected_source(self):
        """An injected source drives the sampling."""
        detector = PlaneDetector(PlaneDetectionConfig(ransac_iterations=1, min_inliers=16))

        # Pixels 0, 1 and 4 are not collinear
        result = detector.detect_planes(torch.full((16,), 0.5), 4, 4, self.camera_params,
                                        ScriptedRandomSource([0, 1, 4]))

        assert result.best_plane.inlier_count == 16
        assert result.degenerate_samples == 0


class TestWallClassifier:
    """Test wall classification from plane normals."""

    def setup_method(self):
        self.classifier = WallClassifier()

    @pytest.mark.parametrize("equation, expected", [
        ((0.0, 0.0, 1.0, -2.0), (PlaneType.WALL, WallDirection.FRONT)),
        ((0.0, 0.0, -1.0, 2.0), (PlaneType.WALL, WallDirection.FRONT)),
        ((1.0, 0.0, 0.0, 2.0), (PlaneType.WALL, WallDirection.LEFT)),
        ((-1.0, 0.0, 0.0, -2.0), (PlaneType.WALL, WallDirection.LEFT)),
        ((1.0, 0.0, 0.0, -2.0), (PlaneType.WALL, WallDirection.RIGHT)),
        ((1.0, 0.0, 0.0, 0.0), (PlaneType.WALL, WallDirection.LEFT)),
        ((-1.0, 0.0, 0.0, 0.0), (PlaneType.WALL, WallDirection.LEFT)),
        ((0.0, 0.0, -1.0, 0.0), (PlaneType.WALL, WallDirection.FRONT)),
        ((0.0, -1.0, 0.0, 0.0), (PlaneType.CEILING, WallDirection.NONE)),
        ((0.0, 1.0, 0.0, 1.0), (PlaneType.FLOOR, WallDirection.NONE)),
        ((0.0, -1.0, 0.0, -1.0), (PlaneType.FLOOR, WallDirection.NONE)),
        ((0.0, 1.0, 0.0, -1.0), (PlaneType.CEILING, WallDirection.NONE)),
        ((0.0, 0.6, 0.8, -2.0), (PlaneType.UNKNOWN, WallDirection.NONE)),
    ])
    def test_classify(self, equation, expected):
        """Classification does not depend on the normal's sign."""
        a, b, c, d = equation
        plane = Plane(a=a, b=b, c=c, d=d, inlier_count=100)

        assert self.classifier.classify(plane) == expected

    def test_diagonal_wall_is_front(self):
        """Walls not clearly to one side count as in front."""
        s = 2 ** -0.5
        plane = Plane(a=s, b=0.0, c=s, d=-3.0, inlier_count=100)

        assert self.classifier.classify(plane) == (PlaneType.WALL, WallDirection.FRONT)

    def test_vertical_axis_down(self):
        """With Y pointing down the floor lies at positive Y."""
        classifier = WallClassifier(vertical_axis=VerticalAxis.DOWN)
        plane = Plane(a=0.0, b=1.0, c=0.0, d=-1.0, inlier_count=100)

        assert classifier.classify(plane) == (PlaneType.FLOOR, WallDirection.NONE)

    def test_annotate(self):
        """Annotation stores the labels on the plane."""
        plane = Plane(a=0.0, b=0.0, c=1.0, d=-2.0, inlier_count=10)

        self.classifier.annotate(plane)

        assert plane.plane_type == PlaneType.WALL
        assert plane.to_dict()['wall_direction'] == 'front'


class TestPlaneVisualizer:
    """Test the debug overlay."""

    def setup_method(self):
        self.visualizer = PlaneVisualizer()
        self.camera_params = CameraParameters(fx=4.0, fy=4.0, cx=2.0, cy=2.0)
        self.grid = np.full(16, 0.5, dtype=np.float32)
        self.result = find_planes_ransac(self.grid, 4, 4, 4.0, 4.0, 2.0, 2.0,
                                         distance_threshold=0.05, min_inliers=10,
                                         max_iterations=50, seed=42)

    def test_overlay_highlights_inliers(self):
        """Inlier pixels differ from the plain depth colour map."""
        base = self.visualizer.colorize_depth(self.grid, 4, 4)
        overlay = self.visualizer.render_overlay(self.grid, 4, 4, self.result, show_label=False)

        assert overlay.shape == (4, 4, 3)
        assert overlay.dtype == np.uint8
        assert np.all(np.any(overlay != base, axis=2))

    def test_overlay_without_plane(self):
        """Empty results leave the colour map untouched."""
        empty = find_planes_ransac(self.grid, 4, 4, 4.0, 4.0, 2.0, 2.0, distance_threshold=0.05,
                                   min_inliers=100, max_iterations=50, seed=42)

        overlay = self.visualizer.render_overlay(self.grid, 4, 4, empty, show_label=False)

        assert np.array_equal(overlay, self.visualizer.colorize_depth(self.grid, 4, 4))

    def test_downsampled_overlay(self):
        """Downsampling shrinks the output image."""
        grid = np.full(64, 0.5, dtype=np.float32)
        result = find_planes_ransac(grid, 8, 8, 8.0, 8.0, 4.0, 4.0, distance_threshold=0.05,
                                    min_inliers=10, max_iterations=50, seed=42)

        overlay = self.visualizer.render_overlay(grid, 8, 8, result, downsample_factor=2)

        assert overlay.shape == (4, 4, 3)

    def test_invalid_downsample_factor(self):
        with pytest.raises(ValueError):
            self.visualizer.render_overlay(self.grid, 4, 4, self.result, downsample_factor=0)

    def test_non_integer_grid_size(self):
        """Float sizes are rejected before any reshaping."""
        with pytest.raises(InputShapeError):
            self.visualizer.colorize_depth(self.grid, 4.0, 4.0)

        with pytest.raises(InputShapeError):
            self.visualizer.render_overlay(self.grid, 4.0, 4, self.result)

    def test_analysis_overlay(self):
        """Obstacle, wall and free path pixels each get their own colour."""
        grid = np.full(16, 0.5, dtype=np.float32)
        grid[0] = 0.95  # Obstacle in the top-left corner
        grid[12] = 0.1  # Free space in the bottom-left corner
        analyzer = DepthAnalyzer(PlaneDetector(PlaneDetectionConfig(ransac_iterations=50,
                                                                    min_inliers=10, seed=42)))

        analysis = analyzer.analyze(grid, 4, 4, self.camera_params)
        base = self.visualizer.colorize_depth(grid, 4, 4)
        overlay = self.visualizer.render_analysis(grid, 4, 4, analysis, show_label=False)

        assert analysis.wall_direction == WallDirection.FRONT
        assert np.argmax(overlay[0, 0]) == 2
        assert np.argmax(overlay[3, 0]) == 1
        assert np.any(overlay[1, 1] != base[1, 1])

    def test_overlay_writer(self, tmp_path):
        """Each write saves the next numbered, downsampled frame."""
        grid = np.full(64, 0.5, dtype=np.float32)
        result = find_planes_ransac(grid, 8, 8, 8.0, 8.0, 4.0, 4.0, distance_threshold=0.05,
                                    min_inliers=10, max_iterations=50, seed=42)
        writer = OverlayWriter(tmp_path / "overlays", downsample_factor=2)

        first = writer.write(grid, 8, 8, result)
        second = writer.write(grid, 8, 8, result)

        assert first.name == "frame_000000.png"
        assert second.name == "frame_000001.png"
        assert cv2.imread(str(first)).shape == (4, 4, 3)

    def test_overlay_writer_rejects_invalid_factor(self, tmp_path):
        with pytest.raises(ValueError):
            OverlayWriter(tmp_path, downsample_factor=0)


if __name__ == "__main__":
    pytest.main([__file__])
