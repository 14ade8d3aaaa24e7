from functools import lru_cache
from typing import Optional
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from PIL import UnidentifiedImageError

from app.db.db import get_engine
from app.db.record_store import SqlRecordStore
from app.services.find_service import FindService
from app.utils.errors import (
    AssetUploadFailed,
    FindNotFound,
    RecordDeleteFailed,
    RecordWriteFailed,
    StoreUnavailable,
    ValidationFailed,
)
from app.utils.form_validator import validate_find_form
from app.utils.s3_service import S3AssetStore, compress_image

router = APIRouter()

MAX_UPLOAD_SIZE_MB = 5
MAX_UPLOAD_BYTES = MAX_UPLOAD_SIZE_MB * 1024 * 1024


@lru_cache
def get_find_service() -> FindService:
    return FindService(S3AssetStore.from_env(), SqlRecordStore(get_engine()))


async def read_image(image: Optional[UploadFile]):
    if image is None or not image.filename:
        return None, None

    raw_bytes = await image.read()

    if not raw_bytes:
        return None, None

    if len(raw_bytes) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=400, detail=f"Image exceeds {MAX_UPLOAD_SIZE_MB}MB limit")

    try:
        data, ext = compress_image(raw_bytes)
    except UnidentifiedImageError:
        raise HTTPException(status_code=400, detail="File is not a readable image")

    base = image.filename.rsplit(".", 1)[0]
    return data, f"{base}.{ext}"


def parse_form(**fields):
    try:
        return validate_find_form(**fields)
    except ValidationFailed as e:
        raise HTTPException(status_code=400, detail=e.errors)


@router.get("/all")
async def get_all_finds(service: FindService = Depends(get_find_service)):
    try:
        finds = await service.list_all()
    except StoreUnavailable:
        raise HTTPException(status_code=503, detail="Failed to load finds")

    return {"finds": finds}


@router.post("/create")
async def add_find(
    name: str = Form(...),
    date: str = Form(""),
    location: str = Form(""),
    coordinates: str = Form(""),
    what3words: str = Form(""),
    depth: str = Form(""),
    metal_type: str = Form(""),
    condition: str = Form(""),
    notes: str = Form(""),
    image: Optional[UploadFile] = File(None),
    service: FindService = Depends(get_find_service),
):
    new_find = parse_form(
        name=name,
        date=date,
        location=location,
        coordinates=coordinates,
        what3words=what3words,
        depth=depth,
        metal_type=metal_type,
        condition=condition,
        notes=notes,
    )

    image_bytes, filename = await read_image(image)

    try:
        return await service.create(new_find, image_bytes, filename or "image")
    except AssetUploadFailed:
        raise HTTPException(status_code=502, detail="Failed to upload image")
    except RecordWriteFailed:
        raise HTTPException(status_code=500, detail="Failed to save find")


@router.get("/{find_id}")
async def get_find(find_id: str, service: FindService = Depends(get_find_service)):
    try:
        find = await service.get(find_id)
    except StoreUnavailable:
        raise HTTPException(status_code=503, detail="Failed to load find")

    if not find:
        raise HTTPException(status_code=404, detail="Find not found")

    return find


@router.patch("/{find_id}")
async def update_find(
    find_id: str,
    name: str = Form(...),
    date: str = Form(""),
    location: str = Form(""),
    coordinates: str = Form(""),
    what3words: str = Form(""),
    depth: str = Form(""),
    metal_type: str = Form(""),
    condition: str = Form(""),
    notes: str = Form(""),
    image: Optional[UploadFile] = File(None),
    service: FindService = Depends(get_find_service),
):
    updates = parse_form(
        name=name,
        date=date,
        location=location,
        coordinates=coordinates,
        what3words=what3words,
        depth=depth,
        metal_type=metal_type,
        condition=condition,
        notes=notes,
    )

    image_bytes, filename = await read_image(image)

    try:
        await service.update(find_id, updates, image_bytes, filename or "image")
    except AssetUploadFailed:
        raise HTTPException(status_code=502, detail="Failed to upload image")
    except FindNotFound:
        raise HTTPException(status_code=404, detail="Find not found")
    except RecordWriteFailed:
        raise HTTPException(status_code=500, detail="Failed to save find")

    return {"ok": True}


@router.delete("/{find_id}")
async def delete_find(find_id: str, service: FindService = Depends(get_find_service)):
    try:
        find = await service.get(find_id)
    except StoreUnavailable:
        raise HTTPException(status_code=503, detail="Failed to load find")

    if not find:
        raise HTTPException(status_code=404, detail="Find not found")

    # only the stored reference is reclaimed, never a caller-supplied one
    try:
        await service.delete(find.id, find.image_url)
    except RecordDeleteFailed:
        raise HTTPException(status_code=500, detail="Failed to delete find")

    return {"ok": True}
