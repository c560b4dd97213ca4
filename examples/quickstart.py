"""
=============================================================================
EXAMPLE: QUICKSTART
=============================================================================

One resource with a path parameter:

    $ python examples/quickstart.py

    $ curl localhost:8080/hello/ada
    {"greeting": "Hello, ada!"}

    $ curl -H "Accept: text/xml" localhost:8080/hello/ada
    <response><greeting>Hello, ada!</greeting></response>

    $ curl -H "Accept: text/html" localhost:8080/hello/ada
    <!DOCTYPE html> ... <dt>greeting</dt><dd>Hello, ada!</dd> ...

=============================================================================
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from resourceful import HTTPServer, Resource, ServerConfig

server = HTTPServer(ServerConfig(port=8080))


@server.resource("/hello/:name")
class Hello(Resource):
    def GET(self, request):
        return {"greeting": f"Hello, {self.params['name']}!"}


if __name__ == "__main__":
    server.run()
