"""
JSON / JSONP rendering of lookup results
"""

import json
import logging
import re
from typing import Any, Callable, List, Optional

from pydantic import BaseModel
from starlette.responses import StreamingResponse

logger = logging.getLogger("ipgeo.access")

CONTENT_TYPE = "application/json; charset=utf-8"

MAX_CALLBACK_LENGTH = 2000

# Very restrictive on purpose: the callback name is written into the
# response verbatim. fullmatch, since $ would also accept a trailing newline
CALLBACK_PATTERN = re.compile(r"[a-zA-Z_$][a-zA-Z0-9_$]*")

# Characters that must not appear raw when the body is run as a script
_SCRIPT_UNSAFE = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}
_SCRIPT_UNSAFE_RE = re.compile("[<>&\u2028\u2029]")

def jsonp_callback(callback: Optional[str]) -> Optional[str]:
    """Return ``callback`` if it is safe to wrap the response in, else None"""
    if not callback or len(callback) >= MAX_CALLBACK_LENGTH:
        return None
    if not CALLBACK_PATTERN.fullmatch(callback):
        return None
    return callback

def encode_json(payload: Any, pretty: bool = False) -> str:
    """Serialize ``payload`` as a newline-terminated JSON document"""
    if isinstance(payload, BaseModel):
        payload = payload.model_dump()
    if pretty:
        text = json.dumps(payload, ensure_ascii=False, indent=2)
    else:
        text = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
    # These characters only ever occur inside string literals
    text = _SCRIPT_UNSAFE_RE.sub(lambda m: _SCRIPT_UNSAFE[m.group(0)], text)
    return text + "\n"

def render_chunks(payload: Any, callback: Optional[str] = None, pretty: bool = False) -> List[bytes]:
    """Response body as preamble, document and trailer chunks.

    Without a usable callback the body is the bare JSON document.
    """
    document = encode_json(payload, pretty=pretty).encode("utf-8")
    callback = jsonp_callback(callback)
    if callback is None:
        return [document]
    preamble = f"/**/ typeof {callback} === 'function' && {callback}("
    return [preamble.encode("utf-8"), document, b");"]

class ChunkedResponse(StreamingResponse):
    """Writes pre-rendered chunks one by one.

    A failed write ends the response: the remaining chunks are dropped and
    the connection closes early. ``on_close`` runs once the last chunk is
    written or the write fails.
    """

    def __init__(self, chunks: List[bytes], on_close: Optional[Callable[[], Any]] = None,
                 status_code: int = 200, media_type: str = CONTENT_TYPE):
        super().__init__(iter(chunks), status_code=status_code, media_type=media_type)
        self.chunks = chunks
        self.on_close = on_close

    async def __call__(self, scope, receive, send) -> None:
        try:
            await send({
                "type": "http.response.start",
                "status": self.status_code,
                "headers": self.raw_headers,
            })
            for chunk in self.chunks:
                await send({"type": "http.response.body", "body": chunk, "more_body": True})
            await send({"type": "http.response.body", "body": b"", "more_body": False})
        except OSError as e:
            logger.debug("Response write failed, dropping the rest of the body", extra={
                "error": str(e)
            })
        finally:
            if self.on_close is not None:
                self.on_close()
