import pytest

from app.models.find import PLACEHOLDER_IMAGE_URL, NewFind
from app.services.catalog_view import DELETE_ERROR, LOAD_ERROR, SAVE_ERROR, CatalogView
from app.utils.errors import AssetUploadFailed, RecordDeleteFailed, StoreUnavailable


@pytest.fixture
def view(service):
    return CatalogView(service)


@pytest.mark.asyncio
async def test_refresh_replaces_list(view, service):
    await service.create(NewFind(name="Ring"))
    await service.create(NewFind(name="Token"))

    finds = await view.refresh()

    assert [f.name for f in finds] == ["Token", "Ring"]
    assert view.error == ""


@pytest.mark.asyncio
async def test_refresh_failure_keeps_previous_list(view, service, records):
    await service.create(NewFind(name="Ring"))
    await view.refresh()
    records.fail_read = True

    with pytest.raises(StoreUnavailable):
        await view.refresh()

    assert [f.name for f in view.finds] == ["Ring"]
    assert view.error == LOAD_ERROR


@pytest.mark.asyncio
async def test_list_is_a_value_copy(view, records, service):
    created = await service.create(NewFind(name="Ring"))
    await view.refresh()

    view.finds[0].name = "Edited locally"

    assert records.rows[created.id].name == "Ring"


@pytest.mark.asyncio
async def test_add_prepends(view, service):
    await service.create(NewFind(name="Ring"))
    await view.refresh()

    saved = await view.add(NewFind(name="Token"))

    assert view.finds[0].id == saved.id
    assert saved.image_url == PLACEHOLDER_IMAGE_URL


@pytest.mark.asyncio
async def test_add_failure_leaves_list(view, assets):
    await view.refresh()
    assets.fail_upload = True

    with pytest.raises(AssetUploadFailed):
        await view.add(NewFind(name="Token"), b"img")

    assert view.finds == []
    assert view.error == SAVE_ERROR


@pytest.mark.asyncio
async def test_edit_with_photo_marks_image_stale_until_refresh(view, records):
    saved = await view.add(NewFind(name="Ring"), b"old", "old.webp")

    await view.edit(saved.id, NewFind(name="Gold ring", metal_type="Gold"), b"new", "new.webp")

    cached = view.finds[0]
    assert cached.name == "Gold ring"
    assert cached.metal_type == "Gold"
    # cached URL is the old one; no guessed reference is stored
    assert cached.image_url == saved.image_url
    assert view.is_image_stale(saved.id)

    await view.refresh()

    assert view.finds[0].image_url == records.rows[saved.id].image_url
    assert not view.is_image_stale(saved.id)


@pytest.mark.asyncio
async def test_edit_failure_leaves_list(view, records):
    saved = await view.add(NewFind(name="Ring"))
    records.fail_update = True

    with pytest.raises(Exception):
        await view.edit(saved.id, NewFind(name="Gold ring"))

    assert view.finds[0].name == "Ring"
    assert view.error == SAVE_ERROR


@pytest.mark.asyncio
async def test_remove_drops_entry(view):
    saved = await view.add(NewFind(name="Ring"))

    await view.remove(saved)

    assert view.finds == []


@pytest.mark.asyncio
async def test_remove_failure_keeps_entry(view, records):
    saved = await view.add(NewFind(name="Ring"))
    records.fail_delete = True

    with pytest.raises(RecordDeleteFailed):
        await view.remove(saved)

    assert [f.id for f in view.finds] == [saved.id]
    assert view.error == DELETE_ERROR
