"""Tests for Folder, Tag and File models."""

import pytest
from django.db import IntegrityError, transaction

from server.apps.files.models import File, FileType, Folder, Tag


@pytest.mark.django_db
def test_file_model_str(folder, teacher, make_file):
    """Test File __str__ method."""
    file_instance = make_file(folder, teacher, filename='informe.pdf')

    assert str(file_instance) == 'informe.pdf (pdf)'
    assert not file_instance.is_link


@pytest.mark.django_db
def test_link_is_link(folder, teacher):
    """Test is_link for link entries."""
    link = File.objects.create(
        filename='Clase de anatomía',
        file_type=FileType.VIDEO_LINK,
        url='https://youtu.be/abc',
        folder=folder,
        uploaded_by=teacher,
    )

    assert link.is_link
    assert link.storage_object_id is None
    assert link.size_bytes == 0


@pytest.mark.django_db
def test_link_cannot_reference_object(folder, teacher):
    """Test that link entries never carry a storage object."""
    with pytest.raises(IntegrityError), transaction.atomic():
        File.objects.create(
            filename='Video',
            file_type=FileType.GENERIC_LINK,
            storage_object_id='test/1/video.mp4',
            url='https://example.com/video',
            folder=folder,
            uploaded_by=teacher,
        )


@pytest.mark.django_db
def test_binary_requires_object(folder, teacher):
    """Test that binary entries must reference a storage object."""
    with pytest.raises(IntegrityError), transaction.atomic():
        File.objects.create(
            filename='informe.pdf',
            file_type=FileType.PDF,
            url='https://storage.example.com/informe.pdf',
            folder=folder,
            uploaded_by=teacher,
        )


@pytest.mark.django_db
def test_sibling_folder_names_unique(folder, teacher):
    """Test the database guard on sibling folder names."""
    Folder.objects.create(name='2024', parent_folder=folder, created_by=teacher)

    with pytest.raises(IntegrityError), transaction.atomic():
        Folder.objects.create(
            name='2024',
            parent_folder=folder,
            created_by=teacher,
        )


@pytest.mark.django_db
def test_root_folder_names_unique(folder, teacher):
    """Test that root folders cannot share a name either."""
    with pytest.raises(IntegrityError), transaction.atomic():
        Folder.objects.create(name=folder.name, created_by=teacher)


@pytest.mark.django_db
def test_tag_names_unique(teacher):
    """Test the unique constraint on tag names."""
    Tag.objects.create(name='urgente', created_by=teacher)

    with pytest.raises(IntegrityError), transaction.atomic():
        Tag.objects.create(name='urgente', created_by=teacher)


@pytest.mark.django_db
def test_deleting_group_unassigns(folder, teacher, group, make_file):
    """Test that assigned_group falls back to NULL when a group goes away."""
    folder.assigned_group = group
    folder.save()
    file_instance = make_file(folder, teacher, assigned_group=group)

    group.delete()

    folder.refresh_from_db()
    file_instance.refresh_from_db()
    assert folder.assigned_group is None
    assert file_instance.assigned_group is None
