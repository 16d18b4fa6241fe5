"""Tests for temporary file handling."""

import io

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from services.upload.app.core.errors import EntityTooLarge
from services.upload.app.upload.files import delete_temp_file, safe_filename, save_temp_file


def _upload(content: bytes, filename: str | None = "report.pdf", content_type: str = "application/pdf") -> UploadFile:
    return UploadFile(
        file=io.BytesIO(content),
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


class TestSafeFilename:
    """Tests for filename sanitizing."""

    @pytest.mark.parametrize(
        "filename,expected",
        [
            ("report.pdf", "report.pdf"),
            ("../../etc/passwd", "passwd"),
            ("C:\\Users\\me\\photo 1.jpg", "photo-1.jpg"),
            ("résumé.docx", "r-sum-.docx"),
            ("...", "file"),
            ("", "file"),
        ],
    )
    def test_sanitizes(self, filename, expected):
        """Test paths and unsafe characters are stripped."""
        assert safe_filename(filename) == expected


class TestSaveTempFile:
    """Tests for spooling uploads to disk."""

    @pytest.mark.asyncio
    async def test_saves_file(self, tmp_path):
        """Test content and metadata are captured."""
        temp = await save_temp_file(_upload(b"hello world"), tmp_path / "temp", max_bytes=1024)

        assert temp.path.parent == tmp_path / "temp"
        assert temp.path.read_bytes() == b"hello world"
        assert temp.filename == "report.pdf"
        assert temp.mimetype == "application/pdf"
        assert temp.size == 11

    @pytest.mark.asyncio
    async def test_no_file(self, tmp_path):
        """Test a missing or nameless file yields None."""
        assert await save_temp_file(None, tmp_path, max_bytes=10) is None
        assert await save_temp_file(_upload(b"x", filename=""), tmp_path, max_bytes=10) is None

    @pytest.mark.asyncio
    async def test_empty_file(self, tmp_path):
        """Test an empty upload is treated as no file and leaves nothing behind."""
        assert await save_temp_file(_upload(b""), tmp_path, max_bytes=10) is None
        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_too_large(self, tmp_path):
        """Test oversize uploads raise and the partial file is removed."""
        with pytest.raises(EntityTooLarge):
            await save_temp_file(_upload(b"x" * 11), tmp_path, max_bytes=10)

        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_delete_temp_file(self, tmp_path):
        """Test deletion, including of an already removed file."""
        path = tmp_path / "a.bin"
        path.write_bytes(b"x")

        await delete_temp_file(path)
        await delete_temp_file(path)

        assert not path.exists()
