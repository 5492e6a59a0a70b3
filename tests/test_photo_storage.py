"""Progress photo validation, storage paths and upload error handling."""

import datetime as dt
from unittest.mock import MagicMock, patch

import pytest
import requests

from src.services.errors import InvalidPhotoError, PhotoStorageError
from src.services.photo_storage import (
    MAX_FILE_SIZE,
    build_path,
    delete_photo,
    list_photos,
    save_photo_record,
    thumbnail_url,
    upload_photo,
    validate_photo,
)

DAY = dt.date(2024, 1, 3)
JPEG = b"\xff\xd8\xff\xe0fake-jpeg"


def response(status_code=200, text="{}"):
    res = MagicMock()
    res.status_code = status_code
    res.text = text
    return res


class TestValidation:
    @pytest.mark.parametrize("content_type, ext", [("image/jpeg", "jpg"), ("image/PNG", "png"), ("image/heic", "heic")])
    def test_accepted_types(self, content_type, ext):
        assert validate_photo(JPEG, content_type) == ext

    def test_rejects_other_types(self):
        with pytest.raises(InvalidPhotoError):
            validate_photo(JPEG, "image/gif")
        with pytest.raises(InvalidPhotoError):
            validate_photo(JPEG, None)

    def test_rejects_empty_and_oversized(self):
        with pytest.raises(InvalidPhotoError):
            validate_photo(b"", "image/jpeg")
        with pytest.raises(InvalidPhotoError):
            validate_photo(b"x" * (MAX_FILE_SIZE + 1), "image/jpeg")


class TestPaths:
    def test_path_layout(self):
        assert build_path(12, DAY, "jpg", 1704280000000) == "12/2024-01-03/main_1704280000000.jpg"

    def test_thumbnail_is_a_render_url(self):
        url = thumbnail_url("12/2024-01-03/main_1.jpg")
        assert url.startswith("https://project.supabase.co/storage/v1/render/image/public/")
        assert url.endswith("?width=300&height=300&resize=cover")


class TestUpload:
    def test_success(self):
        with patch("src.services.photo_storage.requests.post", return_value=response()) as post:
            stored = upload_photo(12, DAY, JPEG, "image/jpeg")

        assert stored.path.startswith("12/2024-01-03/main_")
        assert stored.url.endswith(stored.path)
        assert "/storage/v1/object/public/" in stored.url
        kwargs = post.call_args.kwargs
        assert kwargs["data"] == JPEG
        assert kwargs["headers"]["x-upsert"] == "false"
        assert kwargs["headers"]["Content-Type"] == "image/jpeg"

    def test_rejected_by_storage(self):
        with patch("src.services.photo_storage.requests.post", return_value=response(413, "too big")):
            with pytest.raises(PhotoStorageError):
                upload_photo(12, DAY, JPEG, "image/jpeg")

    def test_network_error(self):
        with patch("src.services.photo_storage.requests.post", side_effect=requests.ConnectionError("down")):
            with pytest.raises(PhotoStorageError):
                upload_photo(12, DAY, JPEG, "image/jpeg")

    def test_invalid_file_never_uploaded(self):
        with patch("src.services.photo_storage.requests.post") as post:
            with pytest.raises(InvalidPhotoError):
                upload_photo(12, DAY, JPEG, "text/plain")
        post.assert_not_called()


class TestRecords:
    def test_gallery_newest_first_and_delete(self, db, profile, challenge):
        with patch("src.services.photo_storage.requests.post", return_value=response()):
            older = save_photo_record(db, challenge, DAY, upload_photo(challenge.id, DAY, JPEG, "image/jpeg"))
            later = DAY + dt.timedelta(days=1)
            newer = save_photo_record(db, challenge, later, upload_photo(challenge.id, later, JPEG, "image/png"))

        assert [p.id for p in list_photos(db, profile.id)] == [newer.id, older.id]
        assert [p.id for p in list_photos(db, profile.id, start=later)] == [newer.id]

        with patch("src.services.photo_storage.requests.delete", return_value=response()) as delete:
            assert delete_photo(db, profile.id, older.id)
        assert delete.call_args.kwargs["json"] == {"prefixes": [older.storage_path]}
        assert [p.id for p in list_photos(db, profile.id)] == [newer.id]

    def test_delete_other_users_photo(self, db, profile, challenge):
        with patch("src.services.photo_storage.requests.post", return_value=response()):
            photo = save_photo_record(db, challenge, DAY, upload_photo(challenge.id, DAY, JPEG, "image/jpeg"))
        with patch("src.services.photo_storage.requests.delete") as delete:
            assert not delete_photo(db, "someone-else", photo.id)
        delete.assert_not_called()
