# complaint_desk/core/file_store.py
# 附件檔案的寫入與讀取 (與驗證流程分開)
import logging
import os
import secrets
import time
from pathlib import Path
from typing import Optional

import aiofiles

from complaint_desk.utils.file_validator import file_extension

logger = logging.getLogger(__name__)

class FileStorageError(Exception):
    pass

class FileStore:
    """
    檔名格式：{owner_id}-{毫秒時間戳}-{隨機字串}{副檔名}
    原始檔名只取副檔名，不會出現在路徑裡。
    回傳的是相對於 base_dir 的參照，不是可直接對外提供的靜態路徑。
    """

    def __init__(self, base_dir: str):
        self.base_dir = Path(base_dir).resolve()

    def build_storage_name(self, owner_id: str, original_name: str) -> str:
        ext = file_extension(original_name)
        # 副檔名也可能被亂塞，只保留英數
        if not ext[1:].isalnum():
            ext = ""
        token = secrets.token_hex(4)
        return f"{owner_id}-{int(time.time() * 1000)}-{token}{ext}"

    async def save(self, data: bytes, original_name: str, owner_id: str) -> str:
        storage_name = self.build_storage_name(owner_id, original_name)
        file_path = self.base_dir / storage_name
        try:
            os.makedirs(self.base_dir, exist_ok=True)
            async with aiofiles.open(file_path, "wb") as f:
                await f.write(data)
        except OSError as e:
            logger.error(f"Failed to write upload {storage_name}: {e}", exc_info=True)
            raise FileStorageError(f"Failed to store {storage_name}") from e
        logger.info(f"Stored upload {storage_name} ({len(data)} bytes)")
        return storage_name

    def resolve(self, reference: str) -> Optional[Path]:
        """參照 -> 實體路徑；任何跳出 base_dir 的參照都回傳 None"""
        if not reference or "/" in reference or "\\" in reference or reference in (".", ".."):
            return None
        path = (self.base_dir / reference).resolve()
        if path.parent != self.base_dir:
            return None
        return path

    async def read(self, reference: str) -> Optional[bytes]:
        path = self.resolve(reference)
        if path is None or not path.is_file():
            return None
        async with aiofiles.open(path, "rb") as f:
            return await f.read()

    async def delete(self, reference: str) -> None:
        path = self.resolve(reference)
        if path is not None and path.is_file():
            os.remove(path)
