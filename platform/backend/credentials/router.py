"""API key management routes."""

from fastapi import APIRouter, Request, Response

from config import get_settings
from credentials.schemas import CredentialStatus, CredentialUpdate

router = APIRouter(prefix="/api/credentials", tags=["credentials"])


@router.get("", response_model=CredentialStatus)
def get_status(request: Request):
    store = request.app.state.credentials
    return CredentialStatus(configured=store.has_credential())


@router.put("", response_model=CredentialStatus)
async def set_key(body: CredentialUpdate, request: Request):
    store = request.app.state.credentials
    verify = body.verify if body.verify is not None else get_settings().validate_api_keys
    await store.validate_key(body.api_key, live=verify)
    await store.set_key(body.api_key)
    return CredentialStatus(configured=True)


@router.delete("", status_code=204)
async def clear_key(request: Request):
    await request.app.state.credentials.clear()
    return Response(status_code=204)
