"""
glTF 2.0 Exporter (.glb binary format)

Writes the per-color cube groups produced by VoxelMeshBuilder:
- one node + mesh + material per color group
- the group's RGBA as the material's baseColorFactor
- positions (float32 vec3) and indices (uint16/uint32) packed in a single
  binary buffer

GLB Structure:
- 12-byte header ("glTF", version 2, total length)
- JSON chunk describing the scene graph, padded with spaces
- BIN chunk with all buffer views, padded with zeros
"""

from pathlib import Path
from typing import Any, Dict, List, Protocol, Sequence, Tuple, Union
import json
import struct
import numpy as np

from ..mesh import CubeGroup


# glTF constants
GLTF_VERSION = "2.0"
GENERATOR = "EtheriaTileExporter"

# Component types
UNSIGNED_SHORT = 5123
UNSIGNED_INT = 5125
FLOAT = 5126

# Buffer view targets
ARRAY_BUFFER = 34962
ELEMENT_ARRAY_BUFFER = 34963

# Primitive modes
TRIANGLES = 4

MATERIAL_PREFIX = "c"

GLB_MAGIC = 0x46546C67
CHUNK_JSON = 0x4E4F534A
CHUNK_BIN = 0x004E4942


class GeometrySink(Protocol):
    """Anything that can persist a list of cube groups."""

    def export(self, groups: Sequence[CubeGroup], output_path: Union[str, Path]) -> None:
        ...


def _pad4(length: int) -> int:
    return (4 - length % 4) % 4


class GLBExporter:
    """
    Export cube groups to glTF 2.0 binary format (.glb).

    Features:
    - Per-color materials (alpha blending for translucent colors)
    - Smallest index type that fits each group
    - Node, mesh and material names "c<code>"
    """

    def export(
        self,
        groups: Sequence[CubeGroup],
        output_path: Union[str, Path]
    ):
        """
        Export cube groups to a .glb file.

        Args:
            groups: Output of VoxelMeshBuilder.build()
            output_path: Output file path
        """
        output_path = Path(output_path)
        output_path.write_bytes(self.to_bytes(groups))

    def to_bytes(self, groups: Sequence[CubeGroup]) -> bytes:
        """Serialize cube groups to GLB bytes."""
        groups = [g for g in groups if g.cube_count > 0]
        if not groups:
            # An empty tile is still a valid, empty scene
            return self._pack_glb(self._build_gltf([], [], 0), b'')

        buffer_data, views = self._build_buffer(groups)
        gltf = self._build_gltf(groups, views, len(buffer_data))
        return self._pack_glb(gltf, buffer_data)

    def _build_buffer(
        self,
        groups: List[CubeGroup]
    ) -> Tuple[bytes, List[Dict[str, Any]]]:
        """
        Pack every group's indices and positions into one buffer.

        Returns:
            (buffer bytes, per-group view metadata)
        """
        parts = []
        views = []
        offset = 0

        for group in groups:
            if group.indices.max() < 65536:
                index_type = UNSIGNED_SHORT
                indices = group.indices.astype(np.uint16)
            else:
                index_type = UNSIGNED_INT
                indices = group.indices.astype(np.uint32)

            vertices = np.ascontiguousarray(group.vertices, dtype=np.float32)

            index_bytes = indices.tobytes()
            index_offset = offset
            parts.append(index_bytes)
            offset += len(index_bytes)

            # Positions must start 4-byte aligned
            padding = _pad4(offset)
            parts.append(b'\x00' * padding)
            offset += padding

            position_bytes = vertices.tobytes()
            position_offset = offset
            parts.append(position_bytes)
            offset += len(position_bytes)

            views.append({
                "index_type": index_type,
                "index_offset": index_offset,
                "index_length": len(index_bytes),
                "index_count": len(indices),
                "position_offset": position_offset,
                "position_length": len(position_bytes),
                "vertex_count": len(vertices),
                "min": vertices.min(axis=0).tolist(),
                "max": vertices.max(axis=0).tolist(),
            })

        final_padding = _pad4(offset)
        parts.append(b'\x00' * final_padding)

        return b''.join(parts), views

    def _build_gltf(
        self,
        groups: List[CubeGroup],
        views: List[Dict[str, Any]],
        buffer_length: int
    ) -> Dict[str, Any]:
        """Build the glTF JSON structure."""
        nodes = []
        meshes = []
        materials = []
        accessors = []
        buffer_views = []

        for i, (group, view) in enumerate(zip(groups, views)):
            name = f"{MATERIAL_PREFIX}{group.color_index}"
            index_accessor = len(accessors)

            buffer_views.append({
                "buffer": 0,
                "byteOffset": view["index_offset"],
                "byteLength": view["index_length"],
                "target": ELEMENT_ARRAY_BUFFER
            })
            accessors.append({
                "bufferView": len(buffer_views) - 1,
                "componentType": view["index_type"],
                "count": view["index_count"],
                "type": "SCALAR"
            })

            buffer_views.append({
                "buffer": 0,
                "byteOffset": view["position_offset"],
                "byteLength": view["position_length"],
                "target": ARRAY_BUFFER
            })
            accessors.append({
                "bufferView": len(buffer_views) - 1,
                "componentType": FLOAT,
                "count": view["vertex_count"],
                "type": "VEC3",
                "min": view["min"],
                "max": view["max"]
            })

            material = {
                "name": name,
                "pbrMetallicRoughness": {
                    "baseColorFactor": [float(c) for c in group.rgba],
                    "metallicFactor": 0.0,
                    "roughnessFactor": 1.0
                },
                "doubleSided": False
            }
            if group.rgba[3] < 1.0:
                material["alphaMode"] = "BLEND"
            materials.append(material)

            meshes.append({
                "name": name,
                "primitives": [
                    {
                        "attributes": {"POSITION": index_accessor + 1},
                        "indices": index_accessor,
                        "material": i,
                        "mode": TRIANGLES
                    }
                ]
            })
            nodes.append({"mesh": i, "name": name})

        gltf = {
            "asset": {
                "version": GLTF_VERSION,
                "generator": GENERATOR
            },
            "scene": 0,
            "scenes": [
                {"name": "Scene"}
            ]
        }
        # glTF forbids an empty scene node list
        if nodes:
            gltf["scenes"][0]["nodes"] = list(range(len(nodes)))
            gltf.update({
                "nodes": nodes,
                "meshes": meshes,
                "materials": materials,
                "accessors": accessors,
                "bufferViews": buffer_views,
                "buffers": [
                    {"byteLength": buffer_length}
                ]
            })
        return gltf

    def _pack_glb(self, gltf: Dict[str, Any], buffer_data: bytes) -> bytes:
        """Assemble the GLB container."""
        json_bytes = json.dumps(gltf, separators=(',', ':')).encode('utf-8')
        json_bytes += b' ' * _pad4(len(json_bytes))

        chunks = [
            struct.pack('<II', len(json_bytes), CHUNK_JSON),
            json_bytes,
        ]
        if buffer_data:
            chunks.append(struct.pack('<II', len(buffer_data), CHUNK_BIN))
            chunks.append(buffer_data)

        total_length = 12 + sum(len(c) for c in chunks)
        header = struct.pack('<III', GLB_MAGIC, 2, total_length)
        return header + b''.join(chunks)
