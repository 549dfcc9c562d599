"""Vector input: regions, trails and waypoints from KML files.

Coordinates stay in WGS84 lon/lat; project them with ``UtmProjector``
before rasterising onto a mask.
"""

import logging
import xml.etree.ElementTree as ET

from shapely.errors import GEOSException
from shapely.geometry import (GeometryCollection, LineString, Point,
                              Polygon)

from .errors import NoValidGeometriesError, ResourceError

logger = logging.getLogger(__name__)


def _local(tag: str) -> str:
    """Strip the ``{namespace}`` prefix from an element tag."""
    return tag.rsplit('}', 1)[-1]


def _child(element, name):
    for child in element:
        if _local(child.tag) == name:
            return child
    return None


def _parse_coordinates(element) -> list:
    """``lon,lat[,alt]`` tuples separated by whitespace -> ``[(lon, lat), ...]``."""
    coords_el = _child(element, 'coordinates')
    if coords_el is None or not (coords_el.text or '').strip():
        raise ValueError(f"<{_local(element.tag)}> has no coordinates")
    coords = []
    for token in coords_el.text.split():
        parts = token.split(',')
        coords.append((float(parts[0]), float(parts[1])))
    return coords


def _ring(boundary) -> list:
    ring = _child(boundary, 'LinearRing')
    if ring is None:
        raise ValueError("boundary without <LinearRing>")
    return _parse_coordinates(ring)


def _parse_geometry(element):
    """Convert one KML geometry element into shapely, or None if unsupported."""
    name = _local(element.tag)
    if name == 'Point':
        return Point(_parse_coordinates(element)[0])
    if name == 'LineString':
        return LineString(_parse_coordinates(element))
    if name == 'Polygon':
        outer = _child(element, 'outerBoundaryIs')
        if outer is None:
            raise ValueError("<Polygon> without <outerBoundaryIs>")
        holes = [_ring(child) for child in element
                 if _local(child.tag) == 'innerBoundaryIs']
        return Polygon(_ring(outer), holes)
    if name == 'MultiGeometry':
        parts = [_parse_geometry(child) for child in element]
        return GeometryCollection([p for p in parts if p is not None])
    return None


def load_kml_file(path) -> list:
    """Every geometry of every Placemark in a KML file.

    Placemarks whose geometry is malformed are logged and skipped.
    Raises ``ResourceError`` if the file cannot be read or parsed.
    """
    try:
        root = ET.parse(str(path)).getroot()
    except (OSError, ET.ParseError) as e:
        raise ResourceError(f"Failed to read KML file {path}: {e}") from e

    geometries = []
    for placemark in root.iter():
        if _local(placemark.tag) != 'Placemark':
            continue
        for child in placemark:
            try:
                geom = _parse_geometry(child)
            except (ValueError, IndexError, GEOSException) as e:
                logger.warning(f"Malformed geometry in {path}: {e}. Skipping.")
                continue
            if geom is not None:
                geometries.append(geom)

    logger.info(f"Loaded {len(geometries)} geometries from {path}")
    return geometries


def load_kml_files(paths) -> list:
    """Load and concatenate several KML files.

    Files that cannot be read are logged, but as long as at least one
    geometry loads this does not fail.
    """
    paths = list(paths)
    geometries = []
    for path in paths:
        try:
            geometries.extend(load_kml_file(path))
        except ResourceError as e:
            logger.error(f"error loading file {path}: {e}. Skipping file.")

    if not geometries:
        raise NoValidGeometriesError(paths)
    return geometries


def _collect(geometries, geom_type: str) -> list:
    out = []
    for geom in geometries:
        if geom.geom_type == geom_type:
            out.append(geom)
        elif hasattr(geom, 'geoms'):
            # GeometryCollection and Multi* parts
            out.extend(_collect(geom.geoms, geom_type))
    return out


def get_regions(geometries) -> list:
    """All polygons, searched recursively. May be empty."""
    return _collect(geometries, 'Polygon')


def get_trails(geometries) -> list:
    """All line strings, searched recursively. May be empty."""
    return _collect(geometries, 'LineString')


def get_waypoints(geometries) -> list:
    """All points, searched recursively. May be empty."""
    return _collect(geometries, 'Point')
