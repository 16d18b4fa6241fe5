"""Tests for Upload Repository operations."""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from services.upload.app.db.repository import UploadRepository


class TestUploadCreate:
    """Tests for upload creation."""

    @pytest.mark.asyncio
    async def test_create_upload(self, db_session):
        """Test creating an upload with all fields populated."""
        repository = UploadRepository(db_session)
        expires = datetime.now(timezone.utc) + timedelta(days=7)

        upload = await repository.create(
            keyfile="uploads/1700000000000-report.pdf",
            provider="s3",
            filename="report.pdf",
            mimetype="application/pdf",
            size=2048,
            signed_url="https://s3/report.pdf?sig",
            expiry_date_url=expires,
        )

        assert upload.id is not None
        assert upload.provider == "s3"
        assert upload.deleted_at is None
        assert upload.is_deleted is False
        assert upload.created_at == upload.updated_at

    @pytest.mark.asyncio
    async def test_update_sets_fields_and_timestamp(self, db_session, existing_upload):
        """Test update writes values and bumps updated_at."""
        repository = UploadRepository(db_session)
        upload = await repository.get_by_id(existing_upload.id)
        before = upload.updated_at

        updated = await repository.update(upload, filename="renamed.pdf", size=10)

        assert updated.filename == "renamed.pdf"
        assert updated.size == 10
        assert updated.updated_at != before


class TestUploadReads:
    """Tests for reading uploads."""

    @pytest.mark.asyncio
    async def test_get_by_id_hides_soft_deleted(self, db_session, deleted_upload):
        """Test soft-deleted rows are invisible by default."""
        repository = UploadRepository(db_session)

        assert await repository.get_by_id(deleted_upload.id) is None
        found = await repository.get_by_id(deleted_upload.id, include_deleted=True)
        assert found is not None
        assert found.is_deleted is True

    @pytest.mark.asyncio
    async def test_get_by_id_unknown(self, db_session):
        """Test unknown id returns None."""
        repository = UploadRepository(db_session)

        assert await repository.get_by_id(uuid4()) is None

    @pytest.mark.asyncio
    async def test_list_and_count_exclude_deleted(self, db_session, existing_upload, deleted_upload):
        """Test listing only returns live uploads."""
        repository = UploadRepository(db_session)

        uploads = await repository.list_uploads()
        total = await repository.count_uploads()

        assert [u.id for u in uploads] == [existing_upload.id]
        assert total == 1

    @pytest.mark.asyncio
    async def test_list_filters_and_order(self, db_session, make_upload):
        """Test provider and keyword filters plus ordering."""
        now = datetime.now(timezone.utc)
        first = make_upload(provider="s3", filename="alpha.png", keyfile="img/1-alpha.png", created_at=now - timedelta(hours=2))
        second = make_upload(provider="gcs", filename="beta.png", keyfile="img/2-beta.png", created_at=now - timedelta(hours=1))
        third = make_upload(provider="s3", filename="gamma.pdf", keyfile="docs/3-gamma.pdf", created_at=now)
        db_session.add_all([first, second, third])
        await db_session.flush()
        repository = UploadRepository(db_session)

        newest = await repository.list_uploads()
        oldest = await repository.list_uploads(newest_first=False)
        s3_only = await repository.list_uploads(provider="s3")
        images = await repository.list_uploads(keyword="IMG/")

        assert [u.id for u in newest] == [third.id, second.id, first.id]
        assert [u.id for u in oldest] == [first.id, second.id, third.id]
        assert {u.id for u in s3_only} == {first.id, third.id}
        assert {u.id for u in images} == {first.id, second.id}
        assert await repository.count_uploads(keyword="gamma") == 1

    @pytest.mark.asyncio
    async def test_keyword_wildcards_match_literally(self, db_session, make_upload):
        """Test % and _ in a keyword are not treated as LIKE wildcards."""
        underscore = make_upload(filename="report_final.pdf", keyfile="docs/1-report_final.pdf")
        dash = make_upload(filename="report-final.pdf", keyfile="docs/2-report-final.pdf")
        percent = make_upload(filename="50%off.png", keyfile="img/3-50-off.png")
        db_session.add_all([underscore, dash, percent])
        await db_session.flush()
        repository = UploadRepository(db_session)

        assert [u.id for u in await repository.list_uploads(keyword="%")] == [percent.id]
        assert [u.id for u in await repository.list_uploads(keyword="report_")] == [underscore.id]
        assert await repository.count_uploads(keyword="%") == 1

    @pytest.mark.asyncio
    async def test_list_pagination(self, db_session, make_upload):
        """Test limit and offset."""
        now = datetime.now(timezone.utc)
        uploads = [make_upload(created_at=now - timedelta(minutes=i)) for i in range(5)]
        db_session.add_all(uploads)
        await db_session.flush()
        repository = UploadRepository(db_session)

        page = await repository.list_uploads(limit=2, offset=2)

        assert [u.id for u in page] == [uploads[2].id, uploads[3].id]
        assert await repository.count_uploads() == 5

    @pytest.mark.asyncio
    async def test_list_expired_signed_urls(self, db_session, make_upload):
        """Test only live uploads past their URL expiry are returned."""
        now = datetime.now(timezone.utc)
        expired = make_upload(expiry_date_url=now - timedelta(minutes=1))
        fresh = make_upload(expiry_date_url=now + timedelta(days=1))
        expired_deleted = make_upload(expiry_date_url=now - timedelta(days=1), deleted_at=now)
        db_session.add_all([expired, fresh, expired_deleted])
        await db_session.flush()
        repository = UploadRepository(db_session)

        result = await repository.list_expired_signed_urls(now=now)

        assert [u.id for u in result] == [expired.id]


class TestUploadLifecycle:
    """Tests for soft delete, restore and hard delete."""

    @pytest.mark.asyncio
    async def test_soft_delete_and_restore(self, db_session, existing_upload):
        """Test a row can be hidden and brought back."""
        repository = UploadRepository(db_session)
        upload = await repository.get_by_id(existing_upload.id)

        await repository.soft_delete(upload)
        assert await repository.get_by_id(existing_upload.id) is None

        await repository.restore(upload)
        assert await repository.get_by_id(existing_upload.id) is not None

    @pytest.mark.asyncio
    async def test_delete(self, db_session, deleted_upload):
        """Test a row is removed permanently."""
        repository = UploadRepository(db_session)
        upload = await repository.get_by_id(deleted_upload.id, include_deleted=True)

        await repository.delete(upload)

        assert await repository.get_by_id(deleted_upload.id, include_deleted=True) is None


class TestUploadBulk:
    """Tests for bulk operations."""

    @pytest.mark.asyncio
    async def test_soft_delete_many_skips_already_deleted(self, db_session, existing_upload, deleted_upload):
        """Test only live rows are counted."""
        repository = UploadRepository(db_session)

        count = await repository.soft_delete_many([existing_upload.id, deleted_upload.id, uuid4()])

        assert count == 1
        assert await repository.count_uploads() == 0

    @pytest.mark.asyncio
    async def test_restore_many_skips_live(self, db_session, existing_upload, deleted_upload):
        """Test only soft-deleted rows are counted."""
        repository = UploadRepository(db_session)

        count = await repository.restore_many([existing_upload.id, deleted_upload.id])

        assert count == 1
        assert await repository.count_uploads() == 2

    @pytest.mark.asyncio
    async def test_delete_many_and_list_by_ids(self, db_session, existing_upload, deleted_upload):
        """Test hard delete removes live and soft-deleted rows."""
        repository = UploadRepository(db_session)
        ids = [existing_upload.id, deleted_upload.id]

        assert len(await repository.list_by_ids(ids)) == 1
        assert len(await repository.list_by_ids(ids, include_deleted=True)) == 2

        count = await repository.delete_many(ids)

        assert count == 2
        assert await repository.list_by_ids(ids, include_deleted=True) == []
