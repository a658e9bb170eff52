"""Taichi-based interactive progressive path tracer.

This package renders scenes of spheres and triangle meshes by tracing
bouncing rays per pixel and accumulating the results across frames while the
camera and scene stay still.

Subpackages:
    core: Random numbers, ray helpers, the render kernel and the frame loop
    geometry: Ray-sphere, ray-triangle and ray-box intersection
    scene: Scene records, device-side buffers, JSON config and presets
    camera: Perspective camera with cached per-pixel rays
    preview: PNG export, Matplotlib preview and the GGUI viewer

Modules:
    settings: Camera, render and viewport configuration
"""

__version__ = "0.1.0"
