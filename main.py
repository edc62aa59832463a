#!/usr/bin/env python3
"""
Leg Cast CLI - Generate a 3D-printable leg cast from rotating-camera video.

Usage:
    python main.py --input clips/front.mp4 --input clips/back.mp4 --output output/

With resolution presets:
    python main.py -i clips/leg.mp4 --resolution preview
    python main.py -i frames/ --resolution production

Override specific settings:
    python main.py -i clips/leg.mp4 --thickness 4 --ruler-length 30 --ruler-unit cm
"""

import click
from pathlib import Path

from legcast import (
    PipelineConfig,
    ProcessingPipeline,
    ConsoleListener,
    load_frames,
    export_point_cloud_ply,
    write_ascii_stl,
)


@click.command()
@click.option('--input', '-i', 'inputs', required=True, multiple=True, type=click.Path(exists=True),
              help='Video clip or directory of frames (repeat for several clips)')
@click.option('--output', '-o', default='output/', type=click.Path(),
              help='Output directory for STL, measurements and log')
# Resolution controls
@click.option('--resolution', '-r',
              type=click.Choice(['preview', 'standard', 'production']),
              default='standard',
              help='Quality preset (voxel size, slice count, smoothing)')
@click.option('--voxel-size', type=float, default=None,
              help='Override voxel size in mm (smaller=more detail, slower)')
@click.option('--max-points', type=int, default=None,
              help='Override point ceiling after downsampling')
# Cast and calibration
@click.option('--thickness', type=float, default=None,
              help='Cast wall thickness in mm')
@click.option('--ruler-length', type=float, default=None,
              help='Physical ruler length, in --ruler-unit')
@click.option('--ruler-unit', type=click.Choice(['mm', 'cm', 'in']), default=None,
              help='Unit of --ruler-length')
@click.option('--smooth/--no-smooth', default=None,
              help='Apply Laplacian smoothing to the mesh')
@click.option('--workers', type=int, default=None,
              help='Threads for per-frame ruler and silhouette detection')
# Debug outputs
@click.option('--ascii', 'ascii_stl', is_flag=True,
              help='Also write an ASCII STL for inspection')
@click.option('--export-cloud', is_flag=True,
              help='Also write the downsampled point cloud as PLY')
def main(inputs, output, resolution, voxel_size, max_points, thickness, ruler_length,
         ruler_unit, smooth, workers, ascii_stl, export_cloud):
    """
    Reconstruct a leg cast from video of a leg next to a ruler.

    The camera is assumed to circle the leg once at a steady rate. A
    vertical ruler of known length must be visible for scale.
    """
    # Build configuration from preset + overrides
    config = PipelineConfig.from_preset(resolution)

    overrides = {}
    if voxel_size is not None:
        overrides['voxel_size'] = voxel_size
    if max_points is not None:
        overrides['max_points'] = max_points
    if thickness is not None:
        overrides['cast_thickness'] = thickness
    if ruler_length is not None:
        overrides['ruler_length'] = ruler_length
    if ruler_unit is not None:
        overrides['ruler_unit'] = ruler_unit
    if smooth is not None:
        overrides['enable_smoothing'] = smooth
    if workers is not None:
        overrides['workers'] = workers

    if overrides:
        config = config.with_overrides(**overrides)

    print("=" * 60)
    print("LEG CAST PIPELINE")
    print("=" * 60)
    print(config.describe())
    print("=" * 60)

    # Load every clip in order
    print(f"\nLoading {len(inputs)} capture(s)...")
    frames = []
    for path in inputs:
        frames.extend(load_frames(path, config.frame_interval_ms, config.max_frame_width))

    output_dir = Path(output)
    pipeline = ProcessingPipeline(config, ConsoleListener())
    result = pipeline.run(frames, video_count=len(inputs), output_dir=output_dir)

    if ascii_stl:
        ascii_path = output_dir / f"leg_cast_{result.files.timestamp_ms}_ascii.stl"
        ascii_path.write_text(write_ascii_stl(result.mesh))
        print(f"Wrote ASCII STL to {ascii_path}")

    if export_cloud:
        export_point_cloud_ply(result.points, output_dir / f"point_cloud_{result.files.timestamp_ms}.ply")

    # Summary
    m = result.measurements
    print("\n" + "=" * 60)
    print("COMPLETE")
    print("=" * 60)
    print(f"\nAnkle circumference: {config.format_measurement(m.ankle_circumference_mm)}")
    print(f"Calf circumference:  {config.format_measurement(m.calf_circumference_mm)}")
    print(f"Total length:        {config.format_measurement(m.total_length_mm)}")
    print(f"\nModel: {result.point_count:,} points, {result.triangle_count:,} triangles")
    if result.degraded:
        print(f"Degraded: {', '.join(d.value for d in result.degradations)}")
    print()
    print(result.validation.report())
    print(f"\nOutput directory: {output_dir.absolute()}")

    if result.validation.has_errors():
        raise SystemExit(2)


if __name__ == '__main__':
    main()
