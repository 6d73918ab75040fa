# photobooth/infrastructure/storage/template_store.py
import asyncio
import json
import logging
import os
from typing import List, Optional

import aiofiles
from pydantic import ValidationError

from photobooth.domain.models import Template

TEMPLATES_FILE = "photoboothTemplates.json"
ACTIVE_FILE = "activeTemplate.json"

# --- PENGATURAN LOGGER ---
logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter('%(asctime)s [%(levelname)s] [STORE] %(message)s', '%Y-%m-%d %H:%M:%S')
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    logger.propagate = False


class TemplateStore:
    """Saved templates plus the single active one, kept as JSON files in one directory."""

    def __init__(self, directory: str):
        self.directory = directory
        self._lock = asyncio.Lock()

    @property
    def templates_path(self) -> str:
        return os.path.join(self.directory, TEMPLATES_FILE)

    @property
    def active_path(self) -> str:
        return os.path.join(self.directory, ACTIVE_FILE)

    async def _read_json(self, path: str):
        if not os.path.isfile(path):
            return None
        try:
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                return json.loads(await f.read())
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning(f"File '{path}' rusak dan diabaikan: {e}")
            return None

    async def _write_json(self, path: str, data) -> None:
        os.makedirs(self.directory, exist_ok=True)
        tmp_path = path + ".tmp"
        async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
            await f.write(json.dumps(data))
        os.replace(tmp_path, path)

    def _parse(self, record) -> Optional[Template]:
        try:
            return Template.from_record(record)
        except ValidationError as e:
            record_id = record.get("id") if isinstance(record, dict) else None
            logger.warning(f"Template '{record_id}' tidak valid dan dibuang: {e.error_count()} error")
            return None

    async def list_templates(self) -> List[Template]:
        records = await self._read_json(self.templates_path)
        if not isinstance(records, list):
            return []
        return [t for t in (self._parse(r) for r in records) if t is not None]

    async def get_template(self, template_id: str) -> Optional[Template]:
        for template in await self.list_templates():
            if template.id == template_id:
                return template
        return None

    async def save_template(self, template: Template, make_active: bool = True) -> Template:
        async with self._lock:
            templates = [t for t in await self.list_templates() if t.id != template.id]
            templates.append(template)
            await self._write_json(self.templates_path, [t.to_record() for t in templates])
            if make_active:
                await self._write_json(self.active_path, template.to_record())
        logger.info(f"Template '{template.name}' ({template.id}) disimpan, aktif={make_active}.")
        return template

    async def delete_template(self, template_id: str) -> bool:
        async with self._lock:
            templates = await self.list_templates()
            remaining = [t for t in templates if t.id != template_id]
            if len(remaining) == len(templates):
                return False
            await self._write_json(self.templates_path, [t.to_record() for t in remaining])
        logger.info(f"Template {template_id} dihapus.")
        return True

    async def set_active(self, template_id: str) -> Optional[Template]:
        template = await self.get_template(template_id)
        if template is None:
            return None
        async with self._lock:
            await self._write_json(self.active_path, template.to_record())
        logger.info(f"Template aktif sekarang '{template.name}' ({template.id}).")
        return template

    async def get_active(self) -> Optional[Template]:
        record = await self._read_json(self.active_path)
        if record is None:
            return None
        template = self._parse(record)
        if template is None:
            # Record rusak tidak dipakai; kembali ke mode tanpa template.
            await self.clear_active()
        return template

    async def clear_active(self) -> None:
        if os.path.isfile(self.active_path):
            os.remove(self.active_path)
