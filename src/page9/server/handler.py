"""ASGI handler: translates ASGI scope/messages to page9 types.

The only component that touches raw ASGI directly. Converts the scope to a
typed Request, answers the control endpoint itself, sends everything else
through the kernel pipeline, and writes the Response back through send().
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING

from page9._internal.asgi import Receive, Scope, Send
from page9.http.request import Request
from page9.http.response import Response, json_response
from page9.server.sender import send_response

if TYPE_CHECKING:
    from page9.kernel import Kernel

logger = logging.getLogger("page9.server")


async def handle_request(scope: Scope, receive: Receive, send: Send, *, kernel: Kernel) -> None:
    """Process a single HTTP request."""
    if scope["type"] != "http":
        return

    request = Request.from_asgi(scope, receive)

    try:
        if request.path == kernel.options.control_path:
            response = await handle_control(request, kernel)
        else:
            response = await kernel.handle(request)
    except Exception:
        logger.exception("Unhandled error for %s %s", request.method, request.path)
        response = Response(body="Internal Server Error", status=500)

    await send_response(response, send, head=request.method == "HEAD")


async def handle_control(request: Request, kernel: Kernel) -> Response:
    """Answer a control message posted as JSON to the control endpoint.

    The reply is returned as the JSON body. Replies carrying
    ``success: False`` are sent with status 400.
    """
    if request.method != "POST":
        return Response(body="Method Not Allowed", status=405).with_header("Allow", "POST")

    try:
        message = await request.json()
    except ValueError:
        return json_response({"success": False, "error": "Invalid JSON"}, status=400)
    if not isinstance(message, dict):
        return json_response({"success": False, "error": "Message must be a JSON object"}, status=400)

    reply = await kernel.request(message)
    status = 400 if reply.get("success") is False else 200
    return json_response(reply, status=status)
