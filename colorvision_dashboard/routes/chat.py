"""Assistant chat endpoint."""

from typing import Dict

from fastapi import APIRouter, Depends

from ..assistant import answer
from ..auth import AuthContext, get_auth_context
from ..schemas.requests import ChatRequest

router = APIRouter(prefix="/api", tags=["chat"])


@router.post("/chat")
async def chat(
    request: ChatRequest,
    auth: AuthContext = Depends(get_auth_context),
) -> Dict[str, str]:
    """Answer a question about the caller's results."""
    return {
        "message": answer(request.message, request.context, request.conversation_history)
    }
