"""
Geometry sinks for cube meshes.

Supported formats:
- glTF 2.0 binary (.glb) - one mesh and material per color group
"""

from .gltf_exporter import GeometrySink, GLBExporter

__all__ = ["GeometrySink", "GLBExporter"]
