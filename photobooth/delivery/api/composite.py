# photobooth/delivery/api/composite.py
from fastapi import APIRouter, Request, Depends, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from fastapi.responses import FileResponse
from photobooth.delivery.schemas.body import CompositeRequest, CompositeResponse
from photobooth.domain.compositor import CompositionError
from photobooth.domain.composite_service import TemplateNotFoundError
from photobooth.infrastructure.cv.image_codec import PayloadDecodeError
from photobooth.config.settings import settings
import secrets
import threading
import logging
import traceback

router = APIRouter()
security = HTTPBasic()
logger = logging.getLogger("uvicorn.error")

def verify_basic_auth(creds: HTTPBasicCredentials = Depends(security)) -> None:
    ok_user = secrets.compare_digest(creds.username, settings.BASIC_AUTH_USERNAME)
    ok_pass = secrets.compare_digest(creds.password, settings.BASIC_AUTH_PASSWORD)
    if not (ok_user and ok_pass):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Basic"},
        )

def get_service(request: Request):
    service = getattr(request.app.state, "composite_service", None)
    if service is None:
        logger.error("Composite service not initialized")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service is not ready. Please try again in a moment.",
        )
    return service

@router.post("/composite", response_model=CompositeResponse, dependencies=[Depends(verify_basic_auth)])
async def composite(request: Request, body: CompositeRequest):
    logger.info(f"=== ENDPOINT START composite mode={body.mode.name} (threads={threading.active_count()}) ===")
    service = get_service(request)

    try:
        output_id, final_img, template = await service.process(body)
        logger.info(f"=== ENDPOINT SUCCESS composite {output_id} ===")
        return CompositeResponse(
            id=output_id,
            width=final_img.width,
            height=final_img.height,
            url=f"{settings.API_V1_STR}/outputs/{output_id}",
            template_id=template.id if template else None,
        )

    except TemplateNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except (CompositionError, PayloadDecodeError) as e:
        logger.warning(f"Composite ditolak: {e}")
        raise HTTPException(status_code=422, detail=str(e))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"=== ENDPOINT ERROR composite: {e} ===\n{traceback.format_exc()}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Terjadi kesalahan internal pada server.",
        )

@router.get("/outputs/{output_id}")
async def download_output(request: Request, output_id: str):
    outputs = get_service(request).outputs
    if not outputs.exists(output_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Output not found")
    return FileResponse(outputs.path_for(output_id), media_type="image/png", filename=f"photobooth-{output_id}.png")
