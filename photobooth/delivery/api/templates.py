# photobooth/delivery/api/templates.py
from fastapi import APIRouter, Request, Depends, HTTPException, status
from photobooth.delivery.api.composite import verify_basic_auth, get_service
from photobooth.delivery.schemas.body import ActivateResponse
from photobooth.domain.models import Template
import logging

router = APIRouter(prefix="/templates")
logger = logging.getLogger("uvicorn.error")

def get_store(request: Request):
    return get_service(request).store

@router.get("")
async def list_templates(request: Request):
    return [t.to_record() for t in await get_store(request).list_templates()]

@router.post("", status_code=status.HTTP_201_CREATED, dependencies=[Depends(verify_basic_auth)])
async def save_template(request: Request, template: Template):
    # Seperti tombol "Save Template": langsung jadi template aktif.
    saved = await get_store(request).save_template(template, make_active=True)
    return saved.to_record()

@router.get("/active")
async def get_active(request: Request):
    template = await get_store(request).get_active()
    return template.to_record() if template else None

@router.put("/active/{template_id}", response_model=ActivateResponse, dependencies=[Depends(verify_basic_auth)])
async def set_active(request: Request, template_id: str):
    template = await get_store(request).set_active(template_id)
    if template is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template not found")
    return ActivateResponse(template_id=template.id)

@router.delete("/active", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(verify_basic_auth)])
async def clear_active(request: Request):
    await get_store(request).clear_active()

@router.get("/{template_id}")
async def get_template(request: Request, template_id: str):
    template = await get_store(request).get_template(template_id)
    if template is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template not found")
    return template.to_record()

@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(verify_basic_auth)])
async def delete_template(request: Request, template_id: str):
    if not await get_store(request).delete_template(template_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template not found")
