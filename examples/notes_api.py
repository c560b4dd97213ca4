"""
=============================================================================
EXAMPLE: NOTES API
=============================================================================

A small REST API built from resources. Every note can be fetched as
JSON, XML or HTML depending on the client's Accept header:

    $ python examples/notes_api.py

    $ curl localhost:8080/notes
    [{"id": 1, "title": "Groceries", "text": "eggs, flour"}]

    $ curl -H "Accept: application/xml" localhost:8080/notes/1
    <response><id>1</id><title>Groceries</title><text>eggs, flour</text></response>

    $ curl -X POST -d '{"title": "Call", "text": "dentist"}' \\
           -H "Content-Type: application/json" localhost:8080/notes
    {"id": 2, "title": "Call", "text": "dentist"}

    $ curl -X DELETE localhost:8080/notes/2        # 204
    $ curl -X PATCH localhost:8080/notes/1         # 405, Allow: DELETE, GET, ...

=============================================================================
"""

import sys
import threading
from pathlib import Path

# Run from a checkout without installing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from resourceful import (
    BadRequest,
    HTTPServer,
    NotFound,
    Resource,
    ServerConfig,
    UnsupportedMediaType,
)
from resourceful.middleware import LoggingMiddleware


# =============================================================================
# STORAGE
# =============================================================================
# Workers handle requests concurrently, so the dict is guarded by a lock.

notes = {1: {"id": 1, "title": "Groceries", "text": "eggs, flour"}}
notes_lock = threading.Lock()
next_id = 2


def read_note(request) -> dict:
    if not request.is_json:
        raise UnsupportedMediaType("Send the note as application/json")
    data = request.json or {}
    if not isinstance(data, dict) or "title" not in data:
        raise BadRequest("A note needs a title")
    return {"title": str(data["title"]), "text": str(data.get("text", ""))}


# =============================================================================
# RESOURCES
# =============================================================================

class NoteList(Resource):
    """/notes"""

    def GET(self, request):
        with notes_lock:
            return list(notes.values())

    def POST(self, request):
        global next_id
        note = read_note(request)
        with notes_lock:
            note["id"] = next_id
            notes[next_id] = note
            next_id += 1
        location = self.server.url_for("note", id=note["id"])
        return note, 201, {"Location": location}


class Note(Resource):
    """/notes/:id"""

    def note_id(self) -> int:
        try:
            return int(self.params["id"])
        except ValueError:
            raise NotFound(f"No note {self.params['id']!r}")

    def GET(self, request):
        with notes_lock:
            note = notes.get(self.note_id())
        if note is None:
            raise NotFound(f"No note {self.params['id']}")
        return note

    def PUT(self, request):
        note_id = self.note_id()
        note = read_note(request)
        with notes_lock:
            if note_id not in notes:
                raise NotFound(f"No note {note_id}")
            note["id"] = note_id
            notes[note_id] = note
        return note

    def DELETE(self, request):
        with notes_lock:
            if notes.pop(self.note_id(), None) is None:
                raise NotFound(f"No note {self.params['id']}")


def main():
    server = HTTPServer(ServerConfig(port=8080, min_workers=2, max_workers=8))
    server.use(LoggingMiddleware())

    server.add_resource("/notes", NoteList, name="notes")
    server.add_resource("/notes/:id", Note, name="note")

    server.run()


if __name__ == "__main__":
    main()
