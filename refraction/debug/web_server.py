"""Read-only debug server exposing the latest session snapshot as JSON."""

import json
import threading
from http.server import HTTPServer, BaseHTTPRequestHandler
from socketserver import ThreadingMixIn


class ThreadingHTTPServer(ThreadingMixIn, HTTPServer):
    daemon_threads = True


class DebugState:
    """Shared state between the replay loop and the debug server."""

    def __init__(self):
        self.lock = threading.Lock()
        self.snapshot = {}
        self.events = []        # most recent events, newest last
        self.max_events = 50

    def update_snapshot(self, snapshot: dict):
        with self.lock:
            self.snapshot = dict(snapshot)

    def add_event(self, name: str, payload):
        with self.lock:
            self.events.append({"event": name, "data": payload})
            if len(self.events) > self.max_events:
                del self.events[:-self.max_events]

    def get_status(self) -> dict:
        with self.lock:
            return {"status": dict(self.snapshot), "events": list(self.events)}


_INDEX_HTML = b"""\
<html><head><title>Acuity Session Debug</title>
<style>
body { background:#111; color:#0f0; font-family:monospace; margin:0; padding:20px; }
pre { text-align:left; }
</style></head>
<body>
<h2>Acuity Session - Debug</h2>
<pre id="status">loading...</pre>
<script>
function poll() {
    fetch('/api/status')
        .then(r => r.json())
        .then(s => { document.getElementById('status').textContent = JSON.stringify(s, null, 2); })
        .catch(() => { document.getElementById('status').textContent = 'Failed to load status'; });
}
setInterval(poll, 500);
poll();
</script>
</body></html>
"""


class DebugHandler(BaseHTTPRequestHandler):
    debug_state = None  # Set before starting server

    def do_GET(self):
        if self.path == "/":
            self._send_html(_INDEX_HTML)
        elif self.path == "/api/status":
            self._send_json(self.debug_state.get_status())
        else:
            self.send_response(404)
            self.end_headers()

    def _send_html(self, content: bytes):
        self.send_response(200)
        self.send_header("Content-Type", "text/html")
        self.end_headers()
        self.wfile.write(content)

    def _send_json(self, data, status=200):
        body = json.dumps(data, default=str).encode()
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format, *args):
        pass  # Suppress request logging


def start_debug_server(debug_state: DebugState, port: int = 8080):
    """Start the debug web server in a daemon thread."""
    DebugHandler.debug_state = debug_state
    server = ThreadingHTTPServer(("0.0.0.0", port), DebugHandler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    return server
