"""Helpers that wrap payloads in the ``{success, data, message}`` envelope."""

from typing import Any, Dict, List, Optional

from fastapi.responses import JSONResponse


def envelope(data: Any = None, message: Optional[str] = None) -> Dict[str, Any]:
    return {"success": True, "data": data, "message": message}


def error_response(
    status_code: int,
    message: str,
    errors: Optional[Dict[str, List[str]]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    body: Dict[str, Any] = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return JSONResponse(status_code=status_code, content=body, headers=headers)
