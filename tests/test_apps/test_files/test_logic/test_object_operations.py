"""Tests for object lifecycle business logic."""

from unittest import mock

import pytest
from django.core.files.base import ContentFile
from django.db import DatabaseError

from blobdrive.apps.files.exceptions import NotFoundError, QuotaExceededError
from blobdrive.apps.files.logic.object_operations import (
    copy,
    create_folder,
    destination_prefix,
    download_file,
    get_object,
    init_tenant,
    move,
    permanent_delete,
    purge,
    put_object,
    remove_object,
    rename,
    restore,
    soft_delete,
    upload_file,
)
from blobdrive.apps.files.logic.tag_operations import set_tags
from blobdrive.apps.files.models import FileRecord, ItemType


def _upload(storage, path, content=b'x'):
    folder, _, name = path.rpartition('/')
    return upload_file(storage, ContentFile(content, name=name), folder_path=folder)


def _keys(mock_s3, storage):
    bucket = mock_s3.Bucket(storage.bucket_name)
    return sorted(obj.key for obj in bucket.objects.all())


@pytest.mark.django_db
class TestInitTenant:
    """Tests for init_tenant function."""

    def test_idempotent(self, storage, mock_s3):
        """Test initializing twice keeps one bucket."""
        init_tenant(storage)
        init_tenant(storage)

        assert len(list(mock_s3.buckets.all())) == 1


@pytest.mark.django_db
class TestPutGetRemove:
    """Tests for raw object functions."""

    def test_roundtrip_superset_of_metadata(self, storage):
        """Test get returns the bytes and metadata written."""
        key = put_object(storage, 'a.bin', b'\x00\x01', 'application/octet-stream', {'k': 'v'})

        stored = get_object(storage, 'a.bin')

        assert key == 'alice_example_com/a.bin'
        assert stored.content == b'\x00\x01'
        assert stored.properties.metadata.items() >= {'k': 'v'}.items()

    def test_get_missing(self, storage):
        """Test reading a missing object raises NotFoundError."""
        with pytest.raises(NotFoundError):
            get_object(storage, 'missing.txt')

    def test_remove(self, storage):
        """Test hard delete makes the object unreadable."""
        put_object(storage, 'a.txt', b'x', 'text/plain')

        remove_object(storage, 'a.txt')

        with pytest.raises(NotFoundError):
            get_object(storage, 'a.txt')


@pytest.mark.django_db
class TestUploadFile:
    """Tests for upload_file function."""

    def test_upload_writes_object_and_metadata(self, storage, sample_file_content):
        """Test upload stores content with upload metadata."""
        item = upload_file(storage, sample_file_content, folder_path='docs')

        stored = get_object(storage, item.id)
        assert item.id == 'alice_example_com/docs/test.txt'
        assert item.name == 'test.txt'
        assert item.path == 'docs'
        assert stored.content == b'test file content'
        assert stored.properties.content_type == 'text/plain'
        assert stored.properties.metadata['original-name'] == 'test.txt'
        assert stored.properties.metadata['tenant-folder'] == 'alice_example_com'
        assert 'upload-date' in stored.properties.metadata

    def test_upload_records_registry_row(self, storage, sample_file_content):
        """Test upload mirrors a FileRecord owned by the caller."""
        item = upload_file(storage, sample_file_content, folder_path='docs')

        record = FileRecord.objects.get(key=item.id)
        assert record.owner_email == 'alice@example.com'
        assert record.parent_id == 'alice_example_com/docs'
        assert record.size == len(b'test file content')
        assert record.mime_type == 'text/plain'
        assert record.storage_path == f'{storage.bucket_name}/{item.id}'

    def test_upload_to_root(self, storage, sample_file_content):
        """Test root uploads have no parent in the registry."""
        item = upload_file(storage, sample_file_content, folder_path='root')

        assert item.id == 'alice_example_com/test.txt'
        assert FileRecord.objects.get(key=item.id).parent_id is None

    def test_upload_client_content_type_wins(self, storage):
        """Test an explicit content type is stored as given."""
        item = upload_file(
            storage,
            ContentFile(b'{}', name='data.bin'),
            content_type='application/json',
        )

        assert get_object(storage, item.id).properties.content_type == 'application/json'

    def test_upload_over_quota(self, storage, settings, mock_s3):
        """Test upload that would exceed quota is rejected."""
        settings.DRIVE_QUOTA_BYTES = 15
        _upload(storage, 'first.txt', b'0123456789')

        with pytest.raises(QuotaExceededError) as exc_info:
            _upload(storage, 'second.txt', b'0123456789')

        assert exc_info.value.used_bytes == 10
        assert exc_info.value.required_bytes == 10
        assert _keys(mock_s3, storage) == ['alice_example_com/first.txt']

    def test_overwrite_near_quota(self, storage, settings):
        """Test replacing a file only needs room for the size difference."""
        settings.DRIVE_QUOTA_BYTES = 15
        _upload(storage, 'first.txt', b'0123456789')

        item = _upload(storage, 'first.txt', b'abcdefghijkl')

        assert item.size == 12
        with pytest.raises(QuotaExceededError):
            _upload(storage, 'first.txt', b'0123456789abcdef')

    def test_upload_without_name(self, storage):
        """Test a file without a name is refused."""
        with pytest.raises(ValueError, match='file name'):
            upload_file(storage, ContentFile(b'x'))

    def test_upload_rollback_on_registry_error(self, storage, mock_s3, sample_file_content):
        """Test storage upload is removed if the registry write fails."""
        with mock.patch(
            'blobdrive.apps.files.logic.object_operations.registry_operations.record_object',
            side_effect=DatabaseError('db down'),
        ):
            with pytest.raises(DatabaseError):
                upload_file(storage, sample_file_content)

        assert _keys(mock_s3, storage) == []


@pytest.mark.django_db
class TestDownloadFile:
    """Tests for download_file function."""

    def test_download(self, storage, report):
        """Test download returns content, type and name."""
        downloaded = download_file(storage, 'docs/report.pdf')

        assert downloaded.content == b'0123456789'
        assert downloaded.content_type == 'application/pdf'
        assert downloaded.file_name == 'report.pdf'

    def test_download_missing(self, storage):
        """Test download of missing object raises NotFoundError."""
        with pytest.raises(NotFoundError):
            download_file(storage, 'nope.pdf')


@pytest.mark.django_db
class TestCreateFolder:
    """Tests for create_folder function."""

    def test_writes_marker(self, storage, mock_s3):
        """Test folder creation writes a marker with folder metadata."""
        item = create_folder(storage, 'docs/reports')

        properties = storage.properties('alice_example_com/docs/reports/.folder')
        assert item.type == ItemType.FOLDER
        assert item.name == 'reports'
        assert item.path == 'docs'
        assert properties.size == 0
        assert properties.metadata['is-folder'] == 'true'
        assert 'created-date' in properties.metadata

    def test_records_folder(self, storage):
        """Test folder creation mirrors a folder registry row."""
        create_folder(storage, 'docs')

        record = FileRecord.objects.get(key='alice_example_com/docs/.folder')
        assert record.type == ItemType.FOLDER
        assert record.name == 'docs'
        assert record.parent_id is None

    def test_root_refused(self, storage):
        """Test the tenant root cannot be created as a folder."""
        with pytest.raises(ValueError, match='cannot be empty'):
            create_folder(storage, '')


@pytest.mark.django_db
class TestSoftDeleteRestore:
    """Tests for soft_delete and restore functions."""

    def test_soft_delete_keeps_content(self, storage, report):
        """Test soft delete only marks metadata."""
        soft_delete(storage, report.id)

        stored = get_object(storage, report.id)
        assert stored.content == b'0123456789'
        assert stored.properties.metadata['deleted'] == 'true'
        assert stored.properties.metadata['original-path'] == 'docs'
        assert 'deleted-date' in stored.properties.metadata
        assert FileRecord.objects.get(key=report.id).is_deleted is True

    def test_soft_delete_preserves_tags(self, storage, report):
        """Test soft delete merges rather than overwrites metadata."""
        set_tags(storage, report.id, ['work'])

        soft_delete(storage, report.id)

        metadata = storage.properties(report.id).metadata
        assert metadata['tags'] == 'work'
        assert metadata['original-name'] == 'report.pdf'

    def test_restore_removes_exactly_deletion_keys(self, storage, report):
        """Test restore drops the three deletion keys and nothing else."""
        set_tags(storage, report.id, ['work'])
        before = storage.properties(report.id).metadata

        soft_delete(storage, report.id)
        restore(storage, report.id)

        after = storage.properties(report.id).metadata
        assert after == before
        assert FileRecord.objects.get(key=report.id).is_deleted is False

    def test_soft_delete_folder(self, storage):
        """Test deleting a folder marks every object under it."""
        create_folder(storage, 'docs')
        first = _upload(storage, 'docs/a.txt')
        second = _upload(storage, 'docs/deep/b.txt')
        outside = _upload(storage, 'other/c.txt')

        marked = soft_delete(storage, 'alice_example_com/docs/.folder')

        assert sorted(marked) == sorted([
            'alice_example_com/docs/.folder',
            first.id,
            second.id,
        ])
        assert 'deleted' not in storage.properties(outside.id).metadata

    def test_restore_folder(self, storage):
        """Test restoring a folder id restores its deleted objects."""
        _upload(storage, 'docs/a.txt')
        soft_delete(storage, 'docs/')

        restored = restore(storage, 'docs/')

        assert restored == ['alice_example_com/docs/a.txt']

    def test_soft_delete_missing(self, storage):
        """Test deleting missing objects raises NotFoundError."""
        with pytest.raises(NotFoundError):
            soft_delete(storage, 'missing.txt')
        with pytest.raises(NotFoundError):
            soft_delete(storage, 'missing/')

    def test_root_refused(self, storage):
        """Test the tenant root is not an item."""
        with pytest.raises(ValueError, match='tenant root'):
            soft_delete(storage, 'alice_example_com/')


@pytest.mark.django_db
class TestPermanentDelete:
    """Tests for permanent_delete and purge functions."""

    def test_permanent_delete_file(self, storage, report, mock_s3):
        """Test permanent delete removes object and registry row."""
        permanent_delete(storage, report.id)

        assert _keys(mock_s3, storage) == []
        assert not FileRecord.objects.filter(key=report.id).exists()

    def test_permanent_delete_folder(self, storage, mock_s3):
        """Test permanent delete of a folder removes everything under it."""
        create_folder(storage, 'docs')
        _upload(storage, 'docs/a.txt')
        kept = _upload(storage, 'keep.txt')

        removed = permanent_delete(storage, 'docs/')

        assert len(removed) == 2
        assert _keys(mock_s3, storage) == [kept.id]

    def test_purge_does_not_expand_folders(self, storage, mock_s3):
        """Test purge deletes exactly the given keys."""
        create_folder(storage, 'docs')
        child = _upload(storage, 'docs/a.txt')

        purge(storage, ['alice_example_com/docs/.folder'])

        assert _keys(mock_s3, storage) == [child.id]


@pytest.mark.django_db
class TestRename:
    """Tests for rename function."""

    def test_rename_file(self, storage, report, mock_s3):
        """Test rename moves content under the new key."""
        item = rename(storage, report.id, 'summary.pdf')

        assert item.id == 'alice_example_com/docs/summary.pdf'
        assert item.name == 'summary.pdf'
        assert get_object(storage, item.id).content == b'0123456789'
        with pytest.raises(NotFoundError):
            get_object(storage, report.id)
        assert _keys(mock_s3, storage) == [item.id]

    def test_rename_merges_metadata(self, storage, report):
        """Test rename keeps tags and adds rename metadata."""
        set_tags(storage, report.id, ['work'])

        item = rename(storage, report.id, 'summary.pdf')

        metadata = storage.properties(item.id).metadata
        assert metadata['tags'] == 'work'
        assert metadata['original-name'] == 'summary.pdf'
        assert 'renamed-date' in metadata

    def test_rename_updates_registry(self, storage, report):
        """Test registry follows the rename."""
        item = rename(storage, report.id, 'summary.pdf')

        assert not FileRecord.objects.filter(key=report.id).exists()
        assert FileRecord.objects.get(key=item.id).name == 'summary.pdf'

    def test_rename_folder(self, storage, mock_s3):
        """Test renaming a folder rewrites every key under it."""
        create_folder(storage, 'docs')
        _upload(storage, 'docs/a.txt')
        _upload(storage, 'docs/deep/b.txt')

        item = rename(storage, 'docs/', 'papers')

        assert item.id == 'alice_example_com/papers/'
        assert item.type == ItemType.FOLDER
        assert _keys(mock_s3, storage) == [
            'alice_example_com/papers/.folder',
            'alice_example_com/papers/a.txt',
            'alice_example_com/papers/deep/b.txt',
        ]

    def test_rename_same_name(self, storage, report, mock_s3):
        """Test renaming to the current name changes nothing."""
        item = rename(storage, report.id, 'report.pdf')

        assert item.id == report.id
        assert _keys(mock_s3, storage) == [report.id]

    @pytest.mark.parametrize('new_name', ['', '  ', 'a/b.pdf', '.folder'])
    def test_rename_invalid_name(self, storage, report, new_name):
        """Test names that are empty or contain separators are refused."""
        with pytest.raises(ValueError, match='Invalid name'):
            rename(storage, report.id, new_name)

    def test_rename_not_atomic_leaves_duplicate(self, storage, report, mock_s3):
        """Test a failure after the copy leaves both keys present."""
        with mock.patch.object(
            storage,
            'delete',
            side_effect=RuntimeError('crash'),
        ):
            with pytest.raises(RuntimeError):
                rename(storage, report.id, 'summary.pdf')

        assert _keys(mock_s3, storage) == [
            report.id,
            'alice_example_com/docs/summary.pdf',
        ]


@pytest.mark.django_db
class TestCopyMove:
    """Tests for copy and move functions."""

    def test_copy_file(self, storage, report):
        """Test copy leaves the source in place."""
        create_folder(storage, 'archive')

        item = copy(storage, report.id, 'alice_example_com/archive/.folder')

        assert item.id == 'alice_example_com/archive/report.pdf'
        assert get_object(storage, item.id).content == b'0123456789'
        assert get_object(storage, report.id).content == b'0123456789'
        assert FileRecord.objects.filter(key=item.id).exists()

    def test_copy_keeps_metadata(self, storage, report):
        """Test copies carry tags and content type."""
        set_tags(storage, report.id, ['work'])

        item = copy(storage, report.id, 'archive')

        copied = storage.properties(item.id)
        assert copied.metadata['tags'] == 'work'
        assert copied.content_type == 'application/pdf'

    def test_copy_to_root(self, storage, report):
        """Test 'root' names the tenant root."""
        item = copy(storage, report.id, 'root')

        assert item.id == 'alice_example_com/report.pdf'

    def test_copy_folder(self, storage, mock_s3):
        """Test copying a folder copies its live objects only."""
        _upload(storage, 'docs/a.txt')
        gone = _upload(storage, 'docs/gone.txt')
        soft_delete(storage, gone.id)

        item = copy(storage, 'docs/', 'archive')

        assert item.id == 'alice_example_com/archive/docs/'
        assert 'alice_example_com/archive/docs/a.txt' in _keys(mock_s3, storage)
        assert 'alice_example_com/archive/docs/gone.txt' not in _keys(mock_s3, storage)

    def test_copy_folder_into_itself(self, storage):
        """Test a folder cannot be copied below itself."""
        _upload(storage, 'docs/a.txt')

        with pytest.raises(ValueError, match='inside itself'):
            copy(storage, 'docs/', 'docs/sub')

    def test_move_file(self, storage, report, mock_s3):
        """Test move is copy then delete of the source."""
        item = move(storage, report.id, 'archive')

        assert _keys(mock_s3, storage) == [item.id]
        assert not FileRecord.objects.filter(key=report.id).exists()
        assert FileRecord.objects.filter(key=item.id).exists()

    def test_move_folder(self, storage, mock_s3):
        """Test moving a folder moves deleted objects too."""
        _upload(storage, 'docs/a.txt')
        gone = _upload(storage, 'docs/gone.txt')
        soft_delete(storage, gone.id)

        move(storage, 'docs/', 'archive')

        assert _keys(mock_s3, storage) == [
            'alice_example_com/archive/docs/a.txt',
            'alice_example_com/archive/docs/gone.txt',
        ]
        moved = storage.properties('alice_example_com/archive/docs/gone.txt')
        assert moved.metadata['deleted'] == 'true'

    def test_move_to_same_folder(self, storage, report, mock_s3):
        """Test moving into the current folder keeps the object."""
        item = move(storage, report.id, 'docs')

        assert item.id == report.id
        assert _keys(mock_s3, storage) == [report.id]

    def test_move_missing(self, storage):
        """Test moving a missing object raises NotFoundError."""
        with pytest.raises(NotFoundError):
            move(storage, 'missing.txt', 'archive')

    def test_destination_prefix(self, storage):
        """Test destination ids resolve to key prefixes."""
        assert destination_prefix(storage, '') == 'alice_example_com/'
        assert destination_prefix(storage, 'root') == 'alice_example_com/'
        assert destination_prefix(storage, 'docs') == 'alice_example_com/docs/'
        assert destination_prefix(
            storage,
            'alice_example_com/docs/.folder',
        ) == 'alice_example_com/docs/'
