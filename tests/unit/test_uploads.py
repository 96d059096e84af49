from __future__ import annotations

import pytest

from src.app.domain.errors import UploadRejectedError, ValidationError
from src.app.services.uploads import (
    MAX_IMAGE_SIZE_BYTES,
    decode_json_list,
    store_image,
)
from tests.fakes import MemoryStorage


class TestStoreImage:
    def test_stores_allowed_image(self) -> None:
        storage = MemoryStorage()

        url = store_image(storage, "u1", "soup.jpg", "image/jpeg", b"\xff\xd8\xff")

        assert url.startswith("/uploads/recipes/u1/")
        assert url.endswith("_soup.jpg")
        assert len(storage.objects) == 1

    def test_rejects_disallowed_type(self) -> None:
        with pytest.raises(UploadRejectedError, match="not allowed"):
            store_image(MemoryStorage(), "u1", "notes.pdf", "application/pdf", b"%PDF")

    def test_rejects_empty(self) -> None:
        with pytest.raises(UploadRejectedError):
            store_image(MemoryStorage(), "u1", "a.png", "image/png", b"")

    def test_rejects_oversized(self) -> None:
        with pytest.raises(UploadRejectedError, match="too large"):
            store_image(MemoryStorage(), "u1", "a.png", "image/png", b"x" * (MAX_IMAGE_SIZE_BYTES + 1))

    def test_sanitizes_filename(self) -> None:
        storage = MemoryStorage()
        url = store_image(storage, "u1", "../../etc/pass wd.png", "image/png", b"x")
        assert ".." not in url
        assert url.endswith("_pass_wd.png")


class TestDecodeJsonList:
    def test_decodes_string(self) -> None:
        assert decode_json_list('["a", "b"]', "tags") == ["a", "b"]

    def test_passes_through_lists(self) -> None:
        assert decode_json_list(["a"], "tags") == ["a"]

    @pytest.mark.parametrize("value", ["not json", '{"a": 1}', '"text"'])
    def test_rejects_non_arrays(self, value) -> None:
        with pytest.raises(ValidationError, match="ingredients"):
            decode_json_list(value, "ingredients")
