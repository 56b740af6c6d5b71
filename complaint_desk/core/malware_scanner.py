# complaint_desk/core/malware_scanner.py
"""
ClamAV (clamd) 掃毒客戶端，使用 INSTREAM 指令把檔案內容串流過去。

回應格式：
    stream: OK
    stream: <病毒名稱> FOUND
    <訊息> ERROR
"""
import asyncio
import logging
import struct
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024

class MalwareScanError(Exception):
    """掃毒服務無法給出結論 (連線失敗、逾時、回傳 ERROR)"""

@dataclass
class ScanResult:
    infected: bool
    signature: Optional[str] = None

def parse_clamd_response(raw: bytes) -> ScanResult:
    text = raw.decode("utf-8", errors="replace").strip("\0").strip()
    if text.endswith("OK"):
        return ScanResult(infected=False)
    if text.endswith("FOUND"):
        # "stream: Eicar-Test-Signature FOUND"
        body = text[:-len("FOUND")].strip()
        signature = body.split(":", 1)[-1].strip() or None
        return ScanResult(infected=True, signature=signature)
    raise MalwareScanError(f"Unexpected clamd response: {text!r}")

class ClamdScanner:
    def __init__(self, host: str, port: int = 3310, timeout: float = 30.0):
        self.host = host
        self.port = port
        self.timeout = timeout

    async def scan(self, data: bytes) -> ScanResult:
        try:
            return await asyncio.wait_for(self._scan(data), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise MalwareScanError(f"clamd scan timed out after {self.timeout}s") from e
        except OSError as e:
            raise MalwareScanError(f"clamd unreachable at {self.host}:{self.port}: {e}") from e

    async def _scan(self, data: bytes) -> ScanResult:
        reader, writer = await asyncio.open_connection(self.host, self.port)
        try:
            writer.write(b"zINSTREAM\0")
            for offset in range(0, len(data), CHUNK_SIZE):
                chunk = data[offset:offset + CHUNK_SIZE]
                writer.write(struct.pack("!L", len(chunk)) + chunk)
                await writer.drain()
            # 長度 0 的 chunk 代表串流結束
            writer.write(struct.pack("!L", 0))
            await writer.drain()
            raw = await reader.read()
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError:
                pass
        result = parse_clamd_response(raw)
        logger.info(f"clamd verdict: infected={result.infected} signature={result.signature}")
        return result

def create_scanner(host: Optional[str], port: int, timeout: float) -> Optional[ClamdScanner]:
    """沒設定 CLAMAV_HOST 時不掃毒"""
    if not host:
        logger.info("Malware scanning disabled (CLAMAV_HOST not set)")
        return None
    logger.info(f"Malware scanning enabled via clamd at {host}:{port}")
    return ClamdScanner(host, port, timeout)
