"""
=============================================================================
COMMAND-LINE ENTRY POINT
=============================================================================

    python -m resourceful                       # demo app on 127.0.0.1:8080
    python -m resourceful --port 3000
    python -m resourceful --content-type application/xml
    RESOURCEFUL_PORT=3000 python -m resourceful

Command-line flags win over RESOURCEFUL_* environment variables, which
win over the defaults in ServerConfig.

=============================================================================
"""

import argparse
import sys
from typing import List, Optional

from . import __version__
from .config import LOG_FORMATS, ServerConfig
from .errors import NotFound
from .http import HTTPResponse, default_formatter, media_types
from .middleware import LoggingMiddleware
from .resource import Resource
from .server import HTTPServer


# Demo data for the bundled app
GREETINGS = {"en": "Hello", "fr": "Bonjour", "es": "Hola", "de": "Hallo"}


class Index(Resource):
    """Lists the registered resources."""

    content_types = [media_types.HTML, media_types.JSON, media_types.XML, media_types.TEXT_XML]

    def GET(self, request):
        routes = [
            {"path": route.path, "methods": route.methods}
            for route in self.server.router.routes()
        ]
        return {"server": self.server.config.server_name, "resources": routes}


class Greeting(Resource):
    """GET /greetings/:lang, in whatever representation the client asks for."""

    def GET(self, request):
        lang = self.params["lang"]
        if lang not in GREETINGS:
            raise NotFound(f"No greeting for {lang!r}")
        name = request.get_query("name", "world")
        return {"lang": lang, "greeting": f"{GREETINGS[lang]}, {name}!"}


class File(Resource):
    """GET /files/*path serves one of DOCUMENTS as a raw PDF."""

    content_types = [media_types.PDF]

    def GET(self, request):
        path = self.params["path"]
        if path not in DOCUMENTS:
            raise NotFound(f"No file {path!r}")

        response = HTTPResponse(body=DOCUMENTS[path], headers={"Content-Type": media_types.PDF})
        # The bytes themselves, not the viewer page
        response.formatter = default_formatter.format_default
        return response


class Document(Resource):
    """GET /document/*path shows the file at /files/*path in the embedded viewer."""

    content_types = [media_types.PDF]

    def GET(self, request):
        path = self.params["path"]
        if path not in DOCUMENTS:
            raise NotFound(f"No document {path!r}")
        return self.server.url_for("file", path=path)


def sample_pdf(text: str) -> bytes:
    """A one-page PDF showing a line of text."""
    content = f"BT /F1 18 Tf 24 64 Td ({text}) Tj ET".encode("latin-1")
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 320 144] "
        b"/Contents 4 0 R /Resources << /Font << /F1 5 0 R >> >> >>",
        b"<< /Length %d >>\nstream\n%s\nendstream" % (len(content), content),
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]

    pdf = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, obj in enumerate(objects, start=1):
        offsets.append(len(pdf))
        pdf += b"%d 0 obj\n%s\nendobj\n" % (number, obj)

    xref_offset = len(pdf)
    pdf += b"xref\n0 %d\n0000000000 65535 f \n" % (len(objects) + 1)
    for offset in offsets:
        pdf += b"%010d 00000 n \n" % offset
    pdf += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (
        len(objects) + 1, xref_offset
    )
    return bytes(pdf)


# Demo files served under /files/
DOCUMENTS = {"report.pdf": sample_pdf("Hello from resourceful")}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="resourceful",
        description="Resource-oriented HTTP/1.1 server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m resourceful                          # Run the demo app
  python -m resourceful --port 3000              # Custom port
  python -m resourceful --host 0.0.0.0           # Listen on all interfaces
  python -m resourceful --content-type text/html # Default representation
        """,
    )

    parser.add_argument("--host", "-H", help="Host to bind to (default: 127.0.0.1)")
    parser.add_argument("--port", "-p", type=int, help="Port to listen on (default: 8080)")
    parser.add_argument(
        "--workers", "-w",
        type=int,
        help="Worker threads at startup (the pool may grow to twice this)",
    )
    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        default="text",
        help="Access log format (default: text)",
    )
    parser.add_argument(
        "--content-type", "-c",
        help="Representation used when the client expresses no preference",
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"resourceful {__version__}",
    )
    return parser


def build_config(args: argparse.Namespace) -> ServerConfig:
    """Environment first, then the flags that were actually given."""
    config = ServerConfig.from_env()

    if args.host:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.workers:
        config.min_workers = args.workers
        config.max_workers = args.workers * 2
    if args.log_level:
        config.log_level = args.log_level
    if args.content_type:
        config.default_content_type = args.content_type
    config.log_format = args.log_format

    return config


def create_demo_app(config: ServerConfig) -> HTTPServer:
    server = HTTPServer(config)
    server.use(LoggingMiddleware(log_format=config.log_format))

    server.add_resource("/", Index, name="index")
    server.add_resource("/greetings/:lang", Greeting, name="greeting")
    server.add_resource("/document/*path", Document, name="document")
    server.add_resource("/files/*path", File, name="file")

    @server.get("/health")
    def health(request):
        return {"status": "ok", "workers": server.stats["workers"]}

    return server


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        server = create_demo_app(build_config(args))
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    try:
        server.run()
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
