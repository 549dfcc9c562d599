"""Click CLI commands for terrainbuilder."""

import logging

import click

from .builder import TerrainBuilder
from .constants import DEFAULT_BASE_THICKNESS, DEFAULT_Z_SCALING, UTM_ZONE
from .errors import TerrainBuilderError
from .height_map import HeightMap

logger = logging.getLogger(__name__)


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Log debug output')
def cli(verbose: bool):
    """Turn LiDAR point clouds into 3D-printable terrain STL files."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO,
                        format='%(asctime)s - %(levelname)s - %(message)s')


@cli.command()
@click.argument('pattern')
@click.option('--output', '-o', default='height_map.json', help='Output height map JSON')
@click.option('--x-res', type=int, default=None, help='Samples across the x axis')
@click.option('--y-res', type=int, default=None, help='Samples across the y axis')
@click.option('--image', default=None, help='Also write a greyscale PNG preview')
@click.option('--csv', 'csv_path', default=None, help='Also write raw heights as CSV')
def ingest(pattern: str, output: str, x_res, y_res, image, csv_path):
    """Aggregate LAS/LAZ files matching PATTERN into a height map.

    Leave one of --x-res/--y-res out to keep the aspect ratio of the data.
    """
    try:
        builder = TerrainBuilder()
        hm = builder.load_point_clouds(pattern, x_res, y_res)
        hm.save(output)
        if image:
            hm.save_to_image(image)
        if csv_path:
            hm.save_to_csv(csv_path)
        click.echo(f"Saved {hm.x_res}x{hm.y_res} height map to {output}")
    except TerrainBuilderError as e:
        logger.error(f"Error building height map: {e}")
        raise click.ClickException(str(e))


@cli.command()
@click.argument('height_map')
@click.option('--output', '-o', default='terrain.stl', help='Output STL file path')
@click.option('--z-scaling', '-z', default=DEFAULT_Z_SCALING, show_default=True,
              help='Vertical exaggeration')
@click.option('--base-thickness', '-b', default=DEFAULT_BASE_THICKNESS, show_default=True,
              help='Solid base added under the lowest point')
@click.option('--region', multiple=True, help='KML with polygons to keep (repeatable)')
@click.option('--trail', multiple=True, help='KML with trails to carve (repeatable)')
@click.option('--trail-radius', default=8, show_default=True, help='Trail half width in cells')
@click.option('--trail-offset', default=-10.0, show_default=True,
              help='Height change applied along trails')
@click.option('--waypoint', multiple=True, help='KML with waypoints to mark (repeatable)')
@click.option('--waypoint-radius', default=4, show_default=True, help='Waypoint radius in cells')
@click.option('--waypoint-offset', default=10.0, show_default=True,
              help='Height change applied at waypoints')
@click.option('--utm-zone', type=int, default=UTM_ZONE,
              help='UTM zone of the point cloud (default: from the KML longitude)')
@click.option('--south', is_flag=True, help='UTM zone is in the southern hemisphere')
def stl(height_map: str, output: str, z_scaling: float, base_thickness: float,
        region, trail, trail_radius: int, trail_offset: float,
        waypoint, waypoint_radius: int, waypoint_offset: float,
        utm_zone, south: bool):
    """Write a printable STL from a saved HEIGHT_MAP."""
    try:
        builder = TerrainBuilder(HeightMap.load(height_map),
                                 utm_zone=utm_zone, south=south)
        hm = builder.height_map

        if trail:
            hm.offset_by_mask(builder.trail_mask(trail, trail_radius), trail_offset)
        if waypoint:
            hm.offset_by_mask(builder.waypoint_mask(waypoint, waypoint_radius),
                              waypoint_offset)

        mask = builder.region_mask(region) if region else None
        mesh = builder.generate_stl(output, mask=mask, z_scaling=z_scaling,
                                    base_thickness=base_thickness)
        state = 'closed' if mesh.is_closed() else 'open'
        click.echo(f"{output}: {mesh.triangle_count} triangles ({state})")
    except TerrainBuilderError as e:
        logger.error(f"Error generating STL: {e}")
        raise click.ClickException(str(e))


@cli.command()
@click.argument('height_map')
@click.option('--output', '-o', default='height_map.png', help='Output PNG path')
def image(height_map: str, output: str):
    """Save HEIGHT_MAP as a greyscale preview image."""
    try:
        HeightMap.load(height_map).save_to_image(output)
    except TerrainBuilderError as e:
        raise click.ClickException(str(e))
    click.echo(f"Saved preview to {output}")


@cli.command('csv')
@click.argument('height_map')
@click.option('--output', '-o', default='height_map.csv', help='Output CSV path')
def csv_command(height_map: str, output: str):
    """Dump HEIGHT_MAP heights as headerless CSV rows."""
    try:
        HeightMap.load(height_map).save_to_csv(output)
    except TerrainBuilderError as e:
        raise click.ClickException(str(e))
    click.echo(f"Saved CSV to {output}")
