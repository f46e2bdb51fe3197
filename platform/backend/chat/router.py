"""Agent test-harness chat routes."""

from fastapi import APIRouter, Request

from chat import service
from chat.schemas import ChatRequest, ChatResponse

router = APIRouter(prefix="/api/chat", tags=["chat"])


@router.post("", response_model=ChatResponse)
async def chat(body: ChatRequest, request: Request):
    state = request.app.state
    runner = service.AgentRunner(state.credentials, state.agent_store)
    return await service.handle_chat(runner, state.conversation_locks, body)
