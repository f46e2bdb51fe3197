"""Agent configuration management API routes."""

from fastapi import APIRouter, Request, Response

from agents.schemas import (
    AgentCreate,
    AgentResponse,
    ModelOption,
    ModelOptions,
    ModelSettings,
)
from agents.service import to_response
from config import get_settings

router = APIRouter(prefix="/api/agents", tags=["agents"])
models_router = APIRouter(prefix="/api/models", tags=["agents"])

MODEL_OPTIONS = [
    ModelOption(
        value="gpt-4o",
        label="GPT-4o",
        description="Most capable model for a wide range of tasks (default)",
    ),
    ModelOption(
        value="o3-mini",
        label="O3-mini",
        description="Faster and more cost-effective model for simpler tasks",
    ),
    ModelOption(
        value="gpt-4o-mini",
        label="GPT-4o-mini",
        description="Smaller, faster version of GPT-4o",
    ),
]


@models_router.get("", response_model=ModelOptions)
def list_models():
    defaults = ModelSettings.defaults().model_copy(update={"max_tokens": 4096})
    return ModelOptions(
        models=MODEL_OPTIONS,
        default_model=get_settings().default_model,
        default_settings=defaults,
    )


@router.post("", response_model=AgentResponse, status_code=201)
def create_agent(body: AgentCreate, request: Request):
    store = request.app.state.agent_store
    return to_response(store.create_agent(body))


@router.get("", response_model=list[AgentResponse])
def list_agents(request: Request):
    store = request.app.state.agent_store
    return [to_response(a) for a in store.list_agents()]


@router.get("/{agent_id}", response_model=AgentResponse)
def get_agent(agent_id: str, request: Request):
    store = request.app.state.agent_store
    return to_response(store.get_agent(agent_id))


@router.put("/{agent_id}", response_model=AgentResponse)
def update_agent(agent_id: str, body: AgentCreate, request: Request):
    store = request.app.state.agent_store
    return to_response(store.update_agent(agent_id, body))


@router.delete("/{agent_id}", status_code=204)
def delete_agent(agent_id: str, request: Request):
    store = request.app.state.agent_store
    store.delete_agent(agent_id)
    return Response(status_code=204)
