from typing import Any
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

NO_STORE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, max-age=0",
    "Pragma": "no-cache",
    "Expires": "0",
}

def no_store_json(data, status_code: int = 200):
    """Return JSONResponse with no-store caching headers."""
    return JSONResponse(content=jsonable_encoder(data), status_code=status_code, headers=NO_STORE_HEADERS)

def success_json(message: str, status_code: int = 200, **extra: Any):
    return no_store_json({"success": True, "message": message, **extra}, status_code=status_code)

def failure_json(message: str, status_code: int):
    return no_store_json({"success": False, "message": message}, status_code=status_code)
