"""
Response Translator

Turns a removal result into the HTTP image response. Errors are translated by
the handlers in bgremoval.core.exceptions.
"""

from fastapi.responses import Response

from bgremoval.engines.removal.schemas import DEFAULT_CONTENT_TYPE, RemovalResult

RESULT_FILENAME = "background-removed.png"


def image_response(result: RemovalResult) -> Response:
    """Inline image response with a fixed suggested filename."""
    return Response(
        content=result.content,
        media_type=result.content_type or DEFAULT_CONTENT_TYPE,
        headers={"Content-Disposition": f'inline; filename="{RESULT_FILENAME}"'},
    )
