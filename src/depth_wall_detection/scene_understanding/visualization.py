"""
Debug overlay for plane detection and depth analysis results.

Renders the inverse-depth grid as a colour map and highlights the inlier
pixels of the detected plane, and for a full analysis the obstacle and free
path pixels, for inspecting tuning on recorded frames.
"""

import cv2
import numpy as np
import torch
from pathlib import Path
from typing import Any, Optional, Tuple, Union
import logging

from .plane_models import EstimationResult, DepthAnalysisResult, PlaneType
from .geometry_utils import CameraProjection

logger = logging.getLogger(__name__)


class PlaneVisualizer:
    """Overlay renderer for estimation and analysis results."""

    def __init__(self, highlight_color: Tuple[int, int, int] = (255, 0, 0),
                 highlight_alpha: float = 0.5,
                 colormap: int = cv2.COLORMAP_INFERNO,
                 obstacle_color: Tuple[int, int, int] = (0, 0, 255),
                 free_path_color: Tuple[int, int, int] = (0, 255, 0)):
        """
        Args:
            highlight_color: BGR colour of plane inlier pixels
            highlight_alpha: Blend weight of the highlight colours
            colormap: OpenCV colour map for the depth image
            obstacle_color: BGR colour of obstacle pixels
            free_path_color: BGR colour of free path pixels
        """
        self.highlight_color = highlight_color
        self.highlight_alpha = highlight_alpha
        self.colormap = colormap
        self.obstacle_color = obstacle_color
        self.free_path_color = free_path_color

        self.font_scale = 0.4
        self.font_thickness = 1

    def colorize_depth(self, depth_grid: Any, width: int, height: int) -> np.ndarray:
        """Normalize inverse depth to 8 bits and apply the colour map."""
        grid = CameraProjection.prepare_depth_grid(depth_grid, width, height)
        depth = np.nan_to_num(grid.numpy().reshape(height, width), nan=0.0, posinf=0.0, neginf=0.0)

        normalized = cv2.normalize(depth, None, 0, 255, cv2.NORM_MINMAX)
        return cv2.applyColorMap(normalized.astype(np.uint8), self.colormap)

    def render_overlay(self, depth_grid: Any, width: int, height: int,
                       result: EstimationResult, downsample_factor: int = 1,
                       show_label: bool = True) -> np.ndarray:
        """
        Render the detection result on top of the depth colour map.

        Args:
            depth_grid: Inverse-depth grid the result was computed from
            width: Grid width in pixels
            height: Grid height in pixels
            result: Estimation result
            downsample_factor: Integer factor to shrink the output by
            show_label: Whether to draw the plane label

        Returns:
            BGR uint8 image
        """
        if downsample_factor < 1:
            raise ValueError("Downsample factor must be at least 1")

        vis_frame = self.colorize_depth(depth_grid, width, height)
        self._highlight_plane(vis_frame, result)

        return self._finish(vis_frame, width, height, downsample_factor,
                            self._label(result) if show_label else None)

    def render_analysis(self, depth_grid: Any, width: int, height: int,
                        analysis: DepthAnalysisResult, downsample_factor: int = 1,
                        show_label: bool = True) -> np.ndarray:
        """Render free path, wall inliers and obstacles, drawn in that order."""
        if downsample_factor < 1:
            raise ValueError("Downsample factor must be at least 1")

        vis_frame = self.colorize_depth(depth_grid, width, height)

        if analysis.free_path is not None:
            self._highlight(vis_frame, analysis.free_path.pixel_indices, self.free_path_color)
        if analysis.estimation is not None:
            self._highlight_plane(vis_frame, analysis.estimation)
        if analysis.obstacle is not None:
            self._highlight(vis_frame, analysis.obstacle.pixel_indices, self.obstacle_color)

        label = None
        if show_label:
            label = (f"Obstacle {analysis.obstacle_proximity.value} | "
                     f"Wall {analysis.wall_direction.value} | "
                     f"Path {analysis.free_path_direction.value}")

        return self._finish(vis_frame, width, height, downsample_factor, label)

    def _highlight_plane(self, vis_frame: np.ndarray, result: EstimationResult):
        plane = result.best_plane
        if plane is not None and plane.inlier_indices is not None:
            self._highlight(vis_frame, plane.inlier_indices, self.highlight_color)

    def _highlight(self, vis_frame: np.ndarray, pixel_indices: torch.Tensor,
                   color: Tuple[int, int, int]):
        """Blend ``color`` into the pixels at the given flat indices, in place."""
        if pixel_indices is None or len(pixel_indices) == 0:
            return

        height, width = vis_frame.shape[:2]
        mask = np.zeros(width * height, dtype=bool)
        mask[pixel_indices.numpy()] = True
        mask = mask.reshape(height, width)

        highlight = np.zeros_like(vis_frame)
        highlight[:] = color
        blended = cv2.addWeighted(vis_frame, 1.0 - self.highlight_alpha,
                                  highlight, self.highlight_alpha, 0)
        vis_frame[mask] = blended[mask]

    def _finish(self, vis_frame: np.ndarray, width: int, height: int,
                downsample_factor: int, label: Optional[str]) -> np.ndarray:
        if downsample_factor > 1:
            new_size = (max(1, width // downsample_factor), max(1, height // downsample_factor))
            vis_frame = cv2.resize(vis_frame, new_size, interpolation=cv2.INTER_NEAREST)

        if label:
            cv2.putText(vis_frame, label, (2, 12), cv2.FONT_HERSHEY_SIMPLEX,
                        self.font_scale, (255, 255, 255), self.font_thickness)

        return vis_frame

    def _label(self, result: EstimationResult) -> str:
        plane = result.best_plane
        if plane is None:
            return f"No plane ({result.status.value})"

        if plane.plane_type == PlaneType.WALL:
            return f"Wall {plane.wall_direction.value}: {plane.inlier_count} inliers"
        return f"{plane.plane_type.value.capitalize()}: {plane.inlier_count} inliers"


class OverlayWriter:
    """Saves one numbered debug overlay image per frame to a directory."""

    def __init__(self, output_dir: Union[str, Path], downsample_factor: int = 1,
                 visualizer: Optional[PlaneVisualizer] = None, prefix: str = "frame"):
        if downsample_factor < 1:
            raise ValueError("Downsample factor must be at least 1")

        self.output_dir = Path(output_dir)
        self.downsample_factor = downsample_factor
        self.visualizer = visualizer or PlaneVisualizer()
        self.prefix = prefix
        self.frame_index = 0

        self.output_dir.mkdir(parents=True, exist_ok=True)

    def write(self, depth_grid: Any, width: int, height: int,
              result: Union[EstimationResult, DepthAnalysisResult]) -> Path:
        """Render the result and write it as the next PNG frame."""
        if isinstance(result, DepthAnalysisResult):
            image = self.visualizer.render_analysis(depth_grid, width, height, result,
                                                    self.downsample_factor)
        else:
            image = self.visualizer.render_overlay(depth_grid, width, height, result,
                                                   self.downsample_factor)

        frame_path = self.output_dir / f"{self.prefix}_{self.frame_index:06d}.png"
        if not cv2.imwrite(str(frame_path), image):
            raise IOError(f"Failed to write overlay image: {frame_path}")

        self.frame_index += 1
        logger.debug(f"Saved debug overlay to {frame_path}")
        return frame_path
