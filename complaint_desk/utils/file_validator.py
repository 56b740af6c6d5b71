# complaint_desk/utils/file_validator.py
# 上傳檔案驗證：依序執行各項檢查，遇到第一個失敗就停止並回傳原因
import logging
import os
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 5 * 1024 * 1024  # 5 MiB

ALLOWED_MIME_TYPES = {
    "image/jpeg",
    "image/png",
    "image/gif",
    "application/pdf",
    "text/plain",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".pdf", ".txt", ".doc", ".docx"}

# 雙重副檔名 (例如 report.php.pdf) 也要擋
SUSPICIOUS_EXTENSIONS = {
    "exe", "bat", "cmd", "com", "scr", "msi", "dll",
    "sh", "js", "vbs", "ps1", "jar",
    "php", "phtml", "asp", "aspx", "jsp", "cgi",
}

# 有固定檔頭的型別；沒列在這裡的 (純文字、Word) 不做檔頭比對
MAGIC_BYTES = {
    "image/jpeg": b"\xff\xd8\xff",
    "image/png": b"\x89PNG\r\n\x1a\n",
    "image/gif": b"GIF8",
    "application/pdf": b"%PDF",
}

@dataclass
class UploadedFile:
    """驗證器看到的檔案：內容 + 前端宣告的檔名 / MIME / 大小"""
    filename: str
    content_type: str
    data: bytes
    size: Optional[int] = None

    def __post_init__(self):
        if self.size is None:
            self.size = len(self.data)

@dataclass
class ValidationResult:
    is_valid: bool
    error: Optional[str] = None
    # 機器可讀的失敗原因 (too_large / unsupported_type / ...)
    code: Optional[str] = None

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(is_valid=True)

    @classmethod
    def fail(cls, code: str, error: str) -> "ValidationResult":
        return cls(is_valid=False, error=error, code=code)

def file_extension(filename: str) -> str:
    return os.path.splitext(filename or "")[1].lower()

def has_suspicious_extension(filename: str) -> bool:
    parts = (filename or "").lower().split(".")[1:]
    return any(part.strip() in SUSPICIOUS_EXTENSIONS for part in parts)

def matches_magic_bytes(content_type: str, data: bytes) -> bool:
    signature = MAGIC_BYTES.get(content_type)
    if signature is None:
        return True
    return data[:len(signature)] == signature

class FileValidator:
    """
    檢查順序：
    1. 大小  2. 宣告的 MIME  3. 副檔名  4. 危險副檔名  5. 檔頭  6. 掃毒 (有設定 scanner 才做)
    """

    def __init__(self, max_file_size: int = MAX_FILE_SIZE, scanner=None):
        self.max_file_size = max_file_size
        self.scanner = scanner

    async def validate(self, file: UploadedFile) -> ValidationResult:
        result = self.validate_static(file)
        if not result.is_valid:
            return result
        return await self._scan(file)

    def validate_static(self, file: UploadedFile) -> ValidationResult:
        """不需要 I/O 的檢查 (1~5)"""
        if file.size > self.max_file_size:
            limit_mb = self.max_file_size // (1024 * 1024)
            return ValidationResult.fail("too_large", f"ไฟล์ {file.filename} มีขนาดใหญ่เกิน {limit_mb}MB")

        if file.content_type not in ALLOWED_MIME_TYPES:
            return ValidationResult.fail("unsupported_type", "ไฟล์ประเภทนี้ไม่รองรับ")

        if file_extension(file.filename) not in ALLOWED_EXTENSIONS:
            return ValidationResult.fail("unsupported_extension", "นามสกุลไฟล์ไม่รองรับ")

        if has_suspicious_extension(file.filename):
            logger.warning(f"Rejected suspicious filename: {file.filename!r}")
            return ValidationResult.fail("dangerous_file", "ไฟล์อาจเป็นอันตราย")

        if not matches_magic_bytes(file.content_type, file.data):
            logger.warning(f"Magic bytes mismatch for {file.filename!r} declared as {file.content_type}")
            return ValidationResult.fail("content_mismatch", "เนื้อหาไฟล์ไม่ตรงกับประเภทที่ระบุ")

        return ValidationResult.ok()

    async def _scan(self, file: UploadedFile) -> ValidationResult:
        if self.scanner is None:
            return ValidationResult.ok()
        try:
            scan = await self.scanner.scan(file.data)
        except Exception as e:
            # 掃毒服務異常也視為驗證失敗
            logger.error(f"Malware scan failed for {file.filename!r}: {e}")
            return ValidationResult.fail("malware", "ไฟล์ไม่ผ่านการตรวจสอบไวรัส")
        if scan.infected:
            logger.warning(f"Malware detected in {file.filename!r}: {scan.signature}")
            return ValidationResult.fail("malware", "ไฟล์ไม่ผ่านการตรวจสอบไวรัส")
        return ValidationResult.ok()
