# photobooth/domain/composite_service.py
import asyncio
import logging
import os
import time
import traceback
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Sequence, Tuple

import psutil
from PIL import Image

from photobooth.delivery.schemas.body import CompositeRequest
from photobooth.domain import compositor
from photobooth.domain.models import ImageElement, Template
from photobooth.infrastructure.cv.image_codec import PayloadDecodeError, Raster, decode_payload, decode_photo
from photobooth.infrastructure.storage.output_store import OutputStore
from photobooth.infrastructure.storage.template_store import TemplateStore

# --- PENGATURAN LOGGER ---
# Menginisialisasi logger khusus untuk modul ini untuk menghindari konflik
# dan memungkinkan konfigurasi yang lebih terperinci.
logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter('%(asctime)s [%(levelname)s] %(message)s', '%Y-%m-%d %H:%M:%S')
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    logger.propagate = False # Mencegah log ganda ke root logger


class TemplateNotFoundError(LookupError):
    pass


def _memory_mb() -> float:
    return psutil.Process(os.getpid()).memory_info().rss / 1024 / 1024


class CompositeService:
    def __init__(self, store: TemplateStore, outputs: OutputStore, cpu_executor: ThreadPoolExecutor):
        self.store = store
        self.outputs = outputs
        self.cpu_executor = cpu_executor

    def _decode_one(self, element: ImageElement) -> Optional[Image.Image]:
        try:
            return decode_payload(element.src)
        except PayloadDecodeError as e:
            logger.warning(f"Gagal decode gambar elemen '{element.id}', elemen dilewati: {e}")
            return None

    async def decode_element_images(self, template: Optional[Template]) -> Dict[str, Optional[Image.Image]]:
        if template is None:
            return {}
        image_elements = [el for el in template.elements if isinstance(el, ImageElement)]
        loop = asyncio.get_running_loop()
        futures = [loop.run_in_executor(self.cpu_executor, self._decode_one, el) for el in image_elements]
        decoded = await asyncio.gather(*futures)
        return {el.id: img for el, img in zip(image_elements, decoded)}

    async def decode_photos(self, sources: Sequence[str]) -> List[Image.Image]:
        loop = asyncio.get_running_loop()
        futures = [loop.run_in_executor(self.cpu_executor, decode_photo, src) for src in sources]
        return await asyncio.gather(*futures)

    async def resolve_template(self, template_id: Optional[str], use_active: bool) -> Optional[Template]:
        if template_id:
            template = await self.store.get_template(template_id)
            if template is None:
                raise TemplateNotFoundError(f"Template '{template_id}' tidak ditemukan.")
            return template
        if use_active:
            return await self.store.get_active()
        return None

    async def composite(self, photos: Sequence[Raster], mode, template: Optional[Template]) -> Image.Image:
        decoded_images = await self.decode_element_images(template)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            self.cpu_executor,
            compositor.compose,
            list(photos),
            mode,
            template,
            decoded_images,
        )

    async def process(self, request: CompositeRequest) -> Tuple[str, Image.Image, Optional[Template]]:
        overall_start_time = time.perf_counter()
        logger.info(f"=== START COMPOSITE mode={request.mode.name}, {len(request.photos)} foto ===")
        logger.info(f"Memory usage at start: {_memory_mb():.1f}MB")

        photos: List[Image.Image] = []
        try:
            # TAHAP 1: Template & foto
            template = await self.resolve_template(request.template_id, request.use_active)
            logger.info(f"Tahap 1/3: Template: {template.id if template else 'tidak ada'}; decode {len(request.photos)} foto.")
            photos = await self.decode_photos(request.photos)

            # TAHAP 2: Compositing
            stage_start = time.perf_counter()
            final_img = await self.composite(photos, request.mode, template)
            logger.info(f"Tahap 2/3: Compositing selesai dalam {time.perf_counter() - stage_start:.2f} detik ({final_img.width}x{final_img.height}).")

            # TAHAP 3: Simpan output
            output_id = await self.outputs.save(final_img)
            logger.info(f"Tahap 3/3: Output disimpan dengan id {output_id}.")
            logger.info(f"Memory after composite: {_memory_mb():.1f}MB")

            overall_duration = time.perf_counter() - overall_start_time
            logger.info(f"=== COMPLETED COMPOSITE {output_id} dalam {overall_duration:.2f} detik ===")
            return output_id, final_img, template

        except (TemplateNotFoundError, PayloadDecodeError, compositor.CompositionError):
            raise
        except Exception as e:
            logger.error(f"=== CRITICAL ERROR in composite: {e}\n{traceback.format_exc()} ===")
            raise
        finally:
            for photo in photos:
                photo.close()
