# complaint_desk/utils/tracking.py
import re
import secrets
import time

TRACKING_CODE_PATTERN = re.compile(r"^TRK-[A-Z0-9]+-[A-Z0-9]+$")

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"

def to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("base36 only supports non-negative integers")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))

def generate_tracking_code() -> str:
    """
    產生追蹤碼：TRK-<毫秒時間戳 base36>-<6 碼隨機 base36>，全部大寫。
    同一毫秒內產生的兩組碼靠隨機段區分。
    """
    timestamp = to_base36(int(time.time() * 1000))
    random_part = "".join(secrets.choice(_BASE36) for _ in range(6))
    return f"TRK-{timestamp}-{random_part}".upper()

def is_valid_tracking_code(code: str) -> bool:
    return bool(code) and TRACKING_CODE_PATTERN.match(code) is not None
