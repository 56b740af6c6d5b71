import io

import pytest
from fastapi import UploadFile

from complaint_desk.core.errors import AppError, ErrorKind
from complaint_desk.services.complaint_service import read_upload_files

MAX_SIZE = 5 * 1024 * 1024

class CountingBytesIO(io.BytesIO):
    reads = 0

    def read(self, *args):
        CountingBytesIO.reads += 1
        return super().read(*args)

@pytest.fixture(autouse=True)
def reset_reads():
    CountingBytesIO.reads = 0

def _part(name: str, data: bytes, known_size: bool = True) -> UploadFile:
    return UploadFile(
        file=CountingBytesIO(data),
        filename=name,
        size=len(data) if known_size else None,
    )

async def test_too_many_parts_rejected_before_any_read():
    parts = [_part(f"f{i}.txt", b"hello") for i in range(200)]
    with pytest.raises(AppError) as exc_info:
        await read_upload_files(parts, MAX_SIZE, max_files=5)
    assert exc_info.value.kind == ErrorKind.VALIDATION
    assert CountingBytesIO.reads == 0

async def test_empty_parts_do_not_count_toward_the_cap():
    parts = [_part(f"f{i}.txt", b"hello") for i in range(5)]
    parts += [_part("blank.txt", b""), UploadFile(file=io.BytesIO(b""), filename="", size=0)]
    files = await read_upload_files(parts, MAX_SIZE, max_files=5)
    assert [f.filename for f in files] == [f"f{i}.txt" for i in range(5)]

async def test_each_part_read_at_most_limit_plus_one():
    files = await read_upload_files([_part("big.bin", b"x" * 50)], max_file_size=10, max_files=5)
    assert len(files[0].data) == 11
    assert files[0].size == 50

async def test_unknown_size_parts_are_read_and_measured():
    files = await read_upload_files([_part("notes.txt", b"abc", known_size=False)], MAX_SIZE, max_files=5)
    assert files[0].size == 3
    assert files[0].content_type == "application/octet-stream"
