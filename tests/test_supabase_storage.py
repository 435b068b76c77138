import pytest
from storage3.exceptions import StorageApiError

from file_manager.exceptions import (
    BackendReadError,
    BackendSigningError,
    ConfigurationError,
    NotFoundError,
)
from file_manager.schemas.storage import PutObjectInput, SignedUrlOptions
from file_manager.storage.supabase_storage import SupabaseStorageEngine


@pytest.fixture
def client(mocker):
    return mocker.MagicMock()


@pytest.fixture
def bucket(client):
    return client.storage.from_.return_value


@pytest.fixture
def engine(client) -> SupabaseStorageEngine:
    return SupabaseStorageEngine(bucket="uploads", public=True, client=client)


def file_entry(name: str) -> dict:
    return {"name": name, "id": f"id-{name}"}


def folder_entry(name: str) -> dict:
    return {"name": name, "id": None}


@pytest.mark.unit
def test_should_require_credentials_without_client() -> None:
    with pytest.raises(ConfigurationError):
        SupabaseStorageEngine(url="", service_role_key="")


@pytest.mark.unit
async def test_should_upload_with_content_type(engine, client, bucket) -> None:
    bucket.get_public_url.return_value = "https://x.supabase.co/storage/v1/object/public/uploads/a.txt"

    result = await engine.put_object(PutObjectInput(key="a.txt", body=b"hi", content_type="text/plain"))

    client.storage.from_.assert_called_with("uploads")
    bucket.upload.assert_called_once_with("a.txt", b"hi", {"upsert": "true", "content-type": "text/plain"})
    assert result.size == 2
    assert result.url.endswith("/uploads/a.txt")


@pytest.mark.unit
async def test_should_download_into_stream(engine, bucket) -> None:
    bucket.download.return_value = b"content"

    result = await engine.get_object("docs/a.pdf")

    assert result.size == 7
    assert result.content_type == "application/pdf"
    assert await result.stream.read() == b"content"


@pytest.mark.unit
@pytest.mark.parametrize(
    "error,expected",
    [
        (StorageApiError("Object not found", "not_found", 404), NotFoundError),
        (StorageApiError("Internal error", "internal", 500), BackendReadError),
    ],
)
async def test_should_translate_download_errors(engine, bucket, error, expected) -> None:
    bucket.download.side_effect = error

    with pytest.raises(expected):
        await engine.get_object("k")


@pytest.mark.unit
async def test_should_walk_folders_when_deleting_directory(engine, bucket) -> None:
    listings = {
        "docs": [file_entry("a.txt"), folder_entry("nested")],
        "docs/nested": [file_entry("b.txt")],
    }
    bucket.list.side_effect = lambda folder, options: listings.get(folder, [])

    await engine.delete_directory("docs/")

    bucket.remove.assert_called_once_with(["docs/a.txt", "docs/nested/b.txt"])


@pytest.mark.unit
async def test_should_not_call_remove_when_directory_is_empty(engine, bucket) -> None:
    bucket.list.return_value = []

    await engine.delete_directory("empty")

    bucket.remove.assert_not_called()


@pytest.mark.unit
async def test_should_page_listing_with_offset_cursor(engine, bucket) -> None:
    entries = [file_entry("a"), file_entry("b"), file_entry("c")]
    bucket.list.side_effect = lambda folder, options: entries[options["offset"]:options["offset"] + options["limit"]]

    first = await engine.list("images", None, 2)
    second = await engine.list("images", first.next_cursor, 2)

    assert first.keys == ["images/a", "images/b"]
    assert first.next_cursor == "2"
    assert second.keys == ["images/c"]
    assert second.next_cursor is None


@pytest.mark.unit
async def test_should_keep_paging_when_server_caps_page_size(engine, bucket) -> None:
    entries = [file_entry(f"f{i:04d}") for i in range(1500)]

    def capped_list(folder, options):
        start = options["offset"]
        return entries[start:start + min(options["limit"], 1000)]

    bucket.list.side_effect = capped_list

    first = await engine.list("", None, 1000)
    second = await engine.list("", first.next_cursor, 1000)

    assert len(first.keys) == 1000
    assert first.next_cursor == "1000"
    assert len(second.keys) == 500
    assert second.next_cursor is None


@pytest.mark.unit
async def test_should_use_native_move(engine, bucket) -> None:
    await engine.move_object("a", "b")

    bucket.move.assert_called_once_with("a", "b")
    bucket.copy.assert_not_called()


@pytest.mark.unit
async def test_should_report_exists(engine, bucket) -> None:
    bucket.exists.side_effect = [True, StorageApiError("Object not found", "not_found", 404)]

    assert await engine.exists("a") is True
    assert await engine.exists("b") is False


@pytest.mark.unit
async def test_should_sign_get_and_put_differently(engine, bucket) -> None:
    bucket.create_signed_url.return_value = {"signedURL": "https://signed/get"}
    bucket.create_signed_upload_url.return_value = {"signed_url": "https://signed/put", "token": "t"}

    get_url = await engine.get_signed_url(SignedUrlOptions(key="k", action="get", expires_in_seconds=30))
    put_url = await engine.get_signed_url(SignedUrlOptions(key="k", action="put"))

    bucket.create_signed_url.assert_called_once_with("k", 30)
    bucket.create_signed_upload_url.assert_called_once_with("k")
    assert (get_url, put_url) == ("https://signed/get", "https://signed/put")


@pytest.mark.unit
async def test_should_fail_loudly_when_no_url_returned(engine, bucket) -> None:
    bucket.create_signed_url.return_value = {}

    with pytest.raises(BackendSigningError):
        await engine.get_signed_url(SignedUrlOptions(key="k", action="get"))


@pytest.mark.unit
def test_should_have_no_public_url_for_private_bucket(client) -> None:
    engine = SupabaseStorageEngine(bucket="private", public=False, client=client)

    assert engine.resolve_public_url("k") is None
