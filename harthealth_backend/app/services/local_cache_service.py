# app/services/local_cache_service.py
import asyncio
import json
import logging
import os
from typing import Any, Optional
from urllib.parse import quote

from flask import Flask

logger = logging.getLogger(__name__)


class LocalCacheService:
    """
    사용자별 키-값 로컬 캐시 (앱의 AsyncStorage 역할).
    키 하나당 JSON 파일 하나를 LOCAL_CACHE_DIR 아래에 저장합니다.

    예: 'workoutLogs:abc123' -> <LOCAL_CACHE_DIR>/workoutLogs%3Aabc123.json
    """

    def __init__(self, cache_dir: Optional[str] = None):
        self.cache_dir = cache_dir

    def init_app(self, app: Flask):
        """Flask 앱 설정에서 캐시 디렉터리를 읽어 준비합니다."""
        self.cache_dir = app.config['LOCAL_CACHE_DIR']
        os.makedirs(self.cache_dir, exist_ok=True)
        logger.info(f"LocalCacheService: 캐시 디렉터리 {self.cache_dir}")

    def _path_for(self, key: str) -> str:
        if not self.cache_dir:
            raise RuntimeError("LocalCacheService가 초기화되지 않았습니다. init_app을 먼저 호출해주세요.")
        return os.path.join(self.cache_dir, f"{quote(key, safe='')}.json")

    def _read(self, key: str) -> Optional[str]:
        path = self._path_for(key)
        if not os.path.exists(path):
            return None
        with open(path, 'r', encoding='utf-8') as f:
            return f.read()

    def _write(self, key: str, value: str):
        path = self._path_for(key)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        tmp_path = f"{path}.tmp"
        with open(tmp_path, 'w', encoding='utf-8') as f:
            f.write(value)
        os.replace(tmp_path, path)

    def _remove(self, key: str):
        path = self._path_for(key)
        if os.path.exists(path):
            os.remove(path)

    async def get_item(self, key: str) -> Optional[str]:
        return await asyncio.to_thread(self._read, key)

    async def set_item(self, key: str, value: str):
        await asyncio.to_thread(self._write, key, value)

    async def remove_item(self, key: str):
        await asyncio.to_thread(self._remove, key)

    async def get_json(self, key: str) -> Any:
        """저장된 JSON 값을 파싱해 반환합니다. 키가 없으면 None."""
        raw = await self.get_item(key)
        if raw is None:
            return None
        return json.loads(raw)

    async def set_json(self, key: str, value: Any):
        await self.set_item(key, json.dumps(value, ensure_ascii=False))
