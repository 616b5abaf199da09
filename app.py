#!/usr/bin/env python3
"""
Etheria Tile Exporter Web Interface

A simple Gradio-based web UI: type a tile number, choose settings, and
download the tile as a .glb model.

Run with: RPC_URL=https://... python app.py
Then open http://localhost:7860 in your browser
"""

import sys
from pathlib import Path
import tempfile

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))

import gradio as gr
from etheria_exporter.chain import VERSIONS
from etheria_exporter.config import ExporterSettings, build_request
from etheria_exporter.errors import EtheriaExportError
from etheria_exporter.orchestrator import export_tile

SETTINGS = ExporterSettings()


def run_export(
    mode: str,
    tile: float,
    version: str,
    palette: str,
    name_raw: str,
    center_offset: bool
):
    """
    Export one tile.

    Returns preview path, report text, and the download path.
    """
    try:
        request = build_request(
            mode=mode,
            tile=int(tile) if tile is not None else None,
            version=version,
            palette=palette,
            name_raw=name_raw if mode == "new" else None,
            center_offset=0.5 if center_offset else 0.0,
        )
        export_dir = tempfile.mkdtemp(prefix="etheria-")
        glb_path = str(Path(export_dir) / f"tile_{request.coordinate.tile}.glb")
        result = export_tile(request, settings=SETTINGS, output_path=glb_path)
    except (EtheriaExportError, OSError) as e:
        return None, f"**Error:** {e}", None
    except Exception as e:
        return None, f"**Export failed:** {type(e).__name__}: {e}", None

    stats = result.stats
    low, high = result.bounds
    report = "\n".join(f"- {line}" for line in result.summary())
    stats_text = f"""## Export Complete!

{report}

| Metric | Value |
|--------|-------|
| Color Groups | {stats['color_groups']:,} |
| Cubes | {stats['cubes']:,} |
| Triangles | {stats['triangles']:,} |
| Bounds | {low} .. {high} |
"""

    return glb_path, stats_text, glb_path


# Build the Gradio interface
with gr.Blocks(title="Etheria Tile Exporter") as app:

    gr.Markdown("""
    # Etheria → GLB Exporter
    ### Type a tile number, choose settings, click Generate.
    """)

    with gr.Row():
        # Left column - Settings
        with gr.Column(scale=1):
            mode = gr.Dropdown(
                choices=["old", "new", "auto"],
                value="old",
                label="Mode"
            )

            tile = gr.Number(
                value=464,
                precision=0,
                label="Tile (0..1088)"
            )

            version = gr.Dropdown(
                choices=sorted(VERSIONS),
                value=SETTINGS.default_version,
                label="Version"
            )

            palette = gr.Dropdown(
                choices=["classic", "voxelizer", "6bit"],
                value="classic",
                label="Palette"
            )

            name_raw = gr.Textbox(
                value="0x",
                lines=3,
                label="nameRaw (new mode only)"
            )

            center_offset = gr.Checkbox(value=False, label="Center offset (+0.5)")

            generate_btn = gr.Button("Generate", variant="primary")

        # Middle column - 3D Preview
        with gr.Column(scale=2):
            gr.Markdown("### 3D Preview")

            model_preview = gr.Model3D(
                label="Tile Preview",
                clear_color=[0.1, 0.1, 0.1, 1.0]
            )

            stats_output = gr.Markdown(
                value="Pick a tile and click 'Generate' to see results."
            )

        # Right column - Download
        with gr.Column(scale=1):
            gr.Markdown("### Download")
            glb_output = gr.File(label="GLB")

    generate_btn.click(
        fn=run_export,
        inputs=[mode, tile, version, palette, name_raw, center_offset],
        outputs=[model_preview, stats_output, glb_output]
    )


if __name__ == "__main__":
    print("\n" + "="*60)
    print("Etheria Tile Exporter Web Interface")
    print("="*60)
    print("\nStarting server...")
    print("Open http://localhost:7860 in your browser\n")

    app.launch(
        server_name="0.0.0.0",
        server_port=7860,
        share=False
    )
