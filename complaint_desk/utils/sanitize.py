# complaint_desk/utils/sanitize.py
# 使用者輸入清理 (標題 / 描述 / 搜尋字串 / 顯示用檔名)
import re
import nh3

_SCRIPT_BLOCK = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_JS_PROTOCOL = re.compile(r"javascript:", re.IGNORECASE)
_EVENT_HANDLER = re.compile(r"on\w+\s*=", re.IGNORECASE)
_SEARCH_FORBIDDEN = re.compile(r"[<>\"'%;()&+]")
_FILENAME_FORBIDDEN = re.compile(r"[^a-zA-Z0-9.\-]")
_REPEATED_UNDERSCORE = re.compile(r"_+")

def sanitize_input(text: str) -> str:
    """移除所有 HTML 標籤與 script 片段，只留下純文字"""
    cleaned = _SCRIPT_BLOCK.sub("", text)
    cleaned = _JS_PROTOCOL.sub("", cleaned)
    cleaned = _EVENT_HANDLER.sub("", cleaned)
    # nh3 不允許任何標籤 => 只保留文字內容
    cleaned = nh3.clean(cleaned, tags=set(), attributes={})
    return cleaned.strip()

def sanitize_search_query(query: str) -> str:
    return _SEARCH_FORBIDDEN.sub("", query).strip()[:100]

def sanitize_filename(filename: str) -> str:
    """
    顯示用檔名：非 [a-zA-Z0-9.-] 的字元換成底線、連續底線合併、轉小寫。
    儲存檔名另外產生 (見 FileStore)，這個結果不會拿來組路徑。
    """
    name = _FILENAME_FORBIDDEN.sub("_", filename)
    name = _REPEATED_UNDERSCORE.sub("_", name)
    return name.lower()[:255]
