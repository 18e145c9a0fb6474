from pydantic import BaseModel


class DeleteResponse(BaseModel):
    """삭제 결과 응답"""

    success: bool = True
    message: str
