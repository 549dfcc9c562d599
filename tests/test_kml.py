"""Tests for KML loading and geometry extraction."""

import pathlib
import tempfile
import unittest

from terrainbuilder.errors import NoValidGeometriesError, ResourceError
from terrainbuilder.kml import (get_regions, get_trails, get_waypoints,
                                load_kml_file, load_kml_files)


KML = """<?xml version="1.0" encoding="UTF-8"?>
<kml xmlns="http://www.opengis.net/kml/2.2">
  <Document>
    <Folder>
      <Placemark>
        <name>Park</name>
        <Polygon>
          <outerBoundaryIs><LinearRing><coordinates>
            -123.0,45.0,0 -122.9,45.0,0 -122.9,45.1,0 -123.0,45.1,0 -123.0,45.0,0
          </coordinates></LinearRing></outerBoundaryIs>
          <innerBoundaryIs><LinearRing><coordinates>
            -122.97,45.03 -122.93,45.03 -122.93,45.07 -122.97,45.03
          </coordinates></LinearRing></innerBoundaryIs>
        </Polygon>
      </Placemark>
      <Placemark>
        <name>Loop trail</name>
        <LineString><coordinates>-123.0,45.0 -122.95,45.05 -122.9,45.1</coordinates></LineString>
      </Placemark>
    </Folder>
    <Placemark>
      <name>Summit</name>
      <Point><coordinates>-122.95,45.05,312</coordinates></Point>
    </Placemark>
    <Placemark>
      <MultiGeometry>
        <Point><coordinates>-122.96,45.06</coordinates></Point>
        <LineString><coordinates>-122.96,45.06 -122.94,45.04</coordinates></LineString>
      </MultiGeometry>
    </Placemark>
    <Placemark>
      <name>Broken</name>
      <LineString><coordinates></coordinates></LineString>
    </Placemark>
  </Document>
</kml>
"""


class TestKml(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.root = pathlib.Path(self.tmp.name)
        self.path = self.root / "park.kml"
        self.path.write_text(KML)

    def tearDown(self):
        self.tmp.cleanup()

    def test_load_file(self):
        geometries = load_kml_file(self.path)
        self.assertEqual([g.geom_type for g in geometries],
                         ['Polygon', 'LineString', 'Point', 'GeometryCollection'])

    def test_extraction(self):
        geometries = load_kml_file(self.path)

        regions = get_regions(geometries)
        self.assertEqual(len(regions), 1)
        self.assertEqual(len(regions[0].interiors), 1)
        self.assertEqual(regions[0].bounds, (-123.0, 45.0, -122.9, 45.1))

        self.assertEqual(len(get_trails(geometries)), 2)

        waypoints = get_waypoints(geometries)
        self.assertEqual(len(waypoints), 2)
        self.assertEqual((waypoints[0].x, waypoints[0].y), (-122.95, 45.05))

    def test_bad_xml(self):
        bad = self.root / "bad.kml"
        bad.write_text("<kml><Placemark>")
        with self.assertRaises(ResourceError):
            load_kml_file(bad)

    def test_partial_batch(self):
        geometries = load_kml_files([self.root / "missing.kml", self.path])
        self.assertEqual(len(geometries), 4)

    def test_single_vertex_line_is_skipped(self):
        path = self.root / "short.kml"
        path.write_text(
            '<kml xmlns="http://www.opengis.net/kml/2.2"><Document>'
            '<Placemark><Point><coordinates>-122.95,45.05</coordinates></Point></Placemark>'
            '<Placemark><LineString><coordinates>-123.0,45.0</coordinates></LineString></Placemark>'
            '</Document></kml>')
        geometries = load_kml_files([path])
        self.assertEqual([g.geom_type for g in geometries], ['Point'])

    def test_nothing_loaded(self):
        empty = self.root / "empty.kml"
        empty.write_text('<kml xmlns="http://www.opengis.net/kml/2.2"><Document/></kml>')
        with self.assertRaises(NoValidGeometriesError):
            load_kml_files([self.root / "missing.kml", empty])


if __name__ == '__main__':
    unittest.main()
