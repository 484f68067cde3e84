from typing import Any, List, Optional
from pydantic import BaseModel

class ResponseModel(BaseModel):
    """Response envelope: {code, message, data}."""
    code: int = 200
    message: str = "success"
    data: Optional[Any] = None

    @staticmethod
    def success(data: Any = None, message: str = "success"):
        return {"code": 200, "message": message, "data": data}

    @staticmethod
    def listing(items: List[Any], total: int):
        return {"code": 200, "message": "success", "data": {"items": items, "total": total}}

    @staticmethod
    def fail(code: int = 400, message: str = "error", data: Any = None):
        return {"code": code, "message": message, "data": data}
