from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from app.db.record_store import SqlRecordStore
from app.models.find import Find, NewFind
from app.services.find_service import FindService
from app.utils.errors import (
    AssetDeleteFailed,
    AssetUploadFailed,
    FindNotFound,
    RecordDeleteFailed,
    RecordWriteFailed,
    StoreUnavailable,
)


class FakeAssetStore:
    def __init__(self):
        self.objects = {}
        self.calls = []
        self.fail_upload = False
        self.fail_delete = False
        self._counter = 0

    def upload_asset(self, data: bytes, suggested_name: str) -> str:
        self.calls.append(("upload", suggested_name))
        if self.fail_upload:
            raise AssetUploadFailed("Failed to upload image")

        self._counter += 1
        url = f"https://assets.test/finds/{self._counter}_{suggested_name}"
        self.objects[url] = data
        return url

    def delete_asset(self, url: str) -> None:
        self.calls.append(("delete", url))
        if self.fail_delete:
            raise AssetDeleteFailed(f"Error deleting {url}")

        self.objects.pop(url, None)


class FakeRecordStore:
    def __init__(self):
        self.rows = {}
        self.calls = []
        self.fail_insert = False
        self.fail_update = False
        self.fail_delete = False
        self.fail_read = False
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def _tick(self):
        self._clock += timedelta(seconds=1)
        return self._clock

    def insert_record(self, fields: dict) -> Find:
        self.calls.append(("insert", fields.get("name")))
        if self.fail_insert:
            raise RecordWriteFailed("Failed to add find")

        find = Find(**fields, created_at=self._tick())
        self.rows[find.id] = find
        return Find(**find.model_dump())

    def update_record(self, find_id: str, fields: dict) -> None:
        self.calls.append(("update", find_id))
        if self.fail_update:
            raise RecordWriteFailed("Failed to update find")
        if find_id not in self.rows:
            raise FindNotFound(find_id)

        data = {**self.rows[find_id].model_dump(), **fields, "updated_at": self._tick()}
        self.rows[find_id] = Find(**data)

    def delete_record(self, find_id: str) -> None:
        self.calls.append(("delete", find_id))
        if self.fail_delete:
            raise RecordDeleteFailed("Failed to delete find")

        self.rows.pop(find_id, None)

    def get_record(self, find_id: str):
        self.calls.append(("get", find_id))
        if self.fail_read:
            raise StoreUnavailable("Failed to load find")

        find = self.rows.get(find_id)
        return Find(**find.model_dump()) if find else None

    def list_records(self):
        self.calls.append(("list", None))
        if self.fail_read:
            raise StoreUnavailable("Failed to load finds")

        ordered = sorted(self.rows.values(), key=lambda f: f.created_at, reverse=True)
        return [Find(**f.model_dump()) for f in ordered]


@pytest.fixture
def assets():
    return FakeAssetStore()


@pytest.fixture
def records():
    return FakeRecordStore()


@pytest.fixture
def service(assets, records):
    return FindService(assets, records)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def record_store(engine):
    return SqlRecordStore(engine)


@pytest.fixture
def quarter():
    return NewFind(
        name="1942 Silver Quarter",
        date="2024-03-15",
        location="North field",
        coordinates="51.5072, -0.1276",
        what3words="filled.count.soap",
        depth="8 inches",
        metal_type="Silver",
        condition="Good",
        notes="Found near the old oak",
    )
