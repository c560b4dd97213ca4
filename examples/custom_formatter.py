"""
=============================================================================
EXAMPLE: REPLACING THE FORMATTER
=============================================================================

Every response body is serialized by a formatter: a callable taking the
response and returning bytes. The default one dispatches on the
Content-Type. This example adds CSV and changes how JSON looks:

    $ python examples/custom_formatter.py

    $ curl -H "Accept: text/csv" localhost:8080/planets
    name,moons
    Mercury,0
    Venus,0
    Earth,1

    $ curl localhost:8080/planets
    [
      {
        "name": "Mercury",
    ...

=============================================================================
"""

import csv
import io
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from resourceful import HTTPServer, Resource, ResponseFormatter, ServerConfig, media_types


CSV = "text/csv"

PLANETS = [
    {"name": "Mercury", "moons": 0},
    {"name": "Venus", "moons": 0},
    {"name": "Earth", "moons": 1},
]


class PlanetFormatter(ResponseFormatter):
    """Pretty JSON plus a text/csv entry for lists of dicts."""

    def __init__(self):
        super().__init__(json_indent=2)
        self.register(CSV, self.format_csv)

    def format_csv(self, response):
        rows = response.body
        if not rows:
            return b""
        out = io.StringIO()
        writer = csv.DictWriter(out, fieldnames=list(rows[0]), lineterminator="\n")
        writer.writeheader()
        writer.writerows(rows)
        return out.getvalue().encode("utf-8")


class Planets(Resource):
    content_types = [media_types.JSON, CSV, media_types.XML]

    def GET(self, request):
        return PLANETS


def main():
    server = HTTPServer(ServerConfig(port=8080))
    server.formatter = PlanetFormatter()
    server.add_resource("/planets", Planets)
    server.run()


if __name__ == "__main__":
    main()
