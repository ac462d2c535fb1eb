"""Vectors, path curves, keypoint graphs, path followers, parking and player-vehicle control for traffic simulation."""

__version__ = "0.1.0"