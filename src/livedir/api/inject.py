"""Live-reload client script and the middleware that injects it into pages."""

from collections.abc import Awaitable, Callable

from fastapi import Request, Response

LIVERELOAD_PATH = "/__livereload"

CLIENT_SCRIPT = f"""<script>
(() => {{
  const url = `${{location.protocol === "https:" ? "wss" : "ws"}}://${{location.host}}{LIVERELOAD_PATH}`;
  let delay = 500;
  const connect = () => {{
    const socket = new WebSocket(url);
    socket.onopen = () => {{ delay = 500; }};
    socket.onmessage = (message) => {{
      if (JSON.parse(message.data).type === "reload") location.reload();
    }};
    socket.onclose = () => {{
      setTimeout(connect, delay);
      delay = Math.min(delay * 2, 5000);
    }};
  }};
  connect();
}})();
</script>
""".encode()

INJECTABLE_STATUSES = frozenset({200, 404})


def inject_script(body: bytes, script: bytes = CLIENT_SCRIPT) -> bytes:
    """Insert the script before the last ``</body>``, or append it."""
    index = body.lower().rfind(b"</body>")
    if index == -1:
        return body + script
    return body[:index] + script + body[index:]


async def livereload_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Add the live-reload client to every HTML page served."""
    response = await call_next(request)

    if request.method != "GET" or response.status_code not in INJECTABLE_STATUSES:
        return response
    if not response.headers.get("content-type", "").startswith("text/html"):
        return response

    body = b"".join([chunk async for chunk in response.body_iterator])
    headers = {
        key: value for key, value in response.headers.items() if key.lower() != "content-length"
    }
    return Response(
        content=inject_script(body),
        status_code=response.status_code,
        headers=headers,
        background=response.background,
    )
