"""Tests for folder tree operations."""

from unittest import mock

import pytest

from server.apps.accounts.logic.actor import Actor
from server.apps.accounts.models import Membership
from server.apps.files.logic import folder_operations
from server.apps.files.logic.folder_operations import (
    create_folder,
    delete_folder,
    folder_path,
    get_folder,
    list_folders,
    update_folder,
)
from server.apps.files.models import Folder
from server.common.exceptions import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)


@pytest.mark.django_db
def test_sibling_name_scenario(teacher_actor):
    """Test that names are unique among siblings only."""
    radiology = create_folder(teacher_actor, 'Radiology')
    create_folder(teacher_actor, '2024', parent_folder_id=radiology.pk)

    with pytest.raises(ConflictError):
        create_folder(teacher_actor, '2024', parent_folder_id=radiology.pk)

    cardiology = create_folder(teacher_actor, 'Cardiology')
    second = create_folder(
        teacher_actor,
        '2024',
        parent_folder_id=str(cardiology.pk),
    )

    assert second.parent_folder_id == cardiology.pk
    assert Folder.objects.filter(name='2024').count() == 2


@pytest.mark.django_db
def test_create_folder_root_conflict(teacher_actor, folder):
    """Test that root folders cannot share a name."""
    with pytest.raises(ConflictError):
        create_folder(teacher_actor, ' Radiology ')


@pytest.mark.django_db
def test_create_folder_records_creator(teacher_actor, teacher, group):
    """Test that the creator and group are stored."""
    created = create_folder(
        teacher_actor,
        '  Tomografía ',
        assigned_group_id=group.pk,
    )

    assert created.name == 'Tomografía'
    assert created.created_by == teacher
    assert created.assigned_group == group
    assert created.parent_folder is None


@pytest.mark.django_db
def test_create_folder_validation(teacher_actor):
    """Test rejected inputs."""
    with pytest.raises(ValidationError):
        create_folder(teacher_actor, '   ')
    with pytest.raises(ValidationError):
        create_folder(teacher_actor, 'A', parent_folder_id='abc')
    with pytest.raises(ValidationError):
        create_folder(teacher_actor, 'A', assigned_group_id='abc')

    assert not Folder.objects.exists()


@pytest.mark.django_db
def test_create_folder_missing_references(teacher_actor):
    """Test that a missing parent or group is NotFoundError."""
    with pytest.raises(NotFoundError):
        create_folder(teacher_actor, 'A', parent_folder_id=999)
    with pytest.raises(NotFoundError):
        create_folder(teacher_actor, 'A', assigned_group_id=999)

    assert not Folder.objects.exists()


@pytest.mark.django_db
def test_list_folders_by_level(teacher_actor, folder):
    """Test that listing returns one level ordered by name."""
    create_folder(teacher_actor, 'b-2024', parent_folder_id=folder.pk)
    create_folder(teacher_actor, 'a-2023', parent_folder_id=folder.pk)

    roots = list_folders(teacher_actor)
    children = list_folders(teacher_actor, parent_folder_id=folder.pk)

    assert [item.name for item in roots] == ['Radiology']
    assert [item.name for item in children] == ['a-2023', 'b-2024']


@pytest.mark.django_db
def test_list_folders_respects_groups(
    teacher_actor,
    resident,
    group,
    folder,
):
    """Test that a resident only sees group folders of their groups."""
    create_folder(
        teacher_actor,
        'Restringida',
        parent_folder_id=folder.pk,
        assigned_group_id=group.pk,
    )

    outsider = Actor.for_user(resident)
    Membership.objects.create(group=group, user=resident)
    member = Actor.for_user(resident)

    assert not list_folders(outsider, folder.pk).exists()
    assert [item.name for item in list_folders(member, folder.pk)] == [
        'Restringida',
    ]


@pytest.mark.django_db
def test_list_folders_refused_for_default_role(plain_actor):
    """Test that the default role cannot list."""
    with pytest.raises(AuthorizationError):
        list_folders(plain_actor)


@pytest.mark.django_db
def test_get_folder_hidden(teacher_actor, resident_actor, group):
    """Test that a hidden folder is reported as missing."""
    restricted = create_folder(
        teacher_actor,
        'Restringida',
        assigned_group_id=group.pk,
    )

    assert get_folder(teacher_actor, restricted.pk) == restricted
    with pytest.raises(NotFoundError):
        get_folder(resident_actor, restricted.pk)


@pytest.mark.django_db
def test_update_folder(teacher_actor, folder, group):
    """Test renaming and assigning a group."""
    updated = update_folder(
        teacher_actor,
        folder.pk,
        name='Radiología',
        assigned_group_id=group.pk,
    )

    assert updated.name == 'Radiología'
    assert updated.assigned_group == group

    cleared = update_folder(teacher_actor, folder.pk, assigned_group_id=None)

    assert cleared.assigned_group is None
    assert cleared.name == 'Radiología'


@pytest.mark.django_db
def test_update_folder_sibling_conflict(teacher_actor, folder):
    """Test that renaming onto a sibling's name fails."""
    create_folder(teacher_actor, 'Cardiology')

    with pytest.raises(ConflictError):
        update_folder(teacher_actor, folder.pk, name='Cardiology')

    folder.refresh_from_db()
    assert folder.name == 'Radiology'


@pytest.mark.django_db
def test_update_folder_keeps_own_name(teacher_actor, folder):
    """Test that saving a folder under its own name is allowed."""
    assert update_folder(teacher_actor, folder.pk, name='Radiology').name == (
        'Radiology'
    )


@pytest.mark.django_db
def test_update_folder_requires_owner(folder, other_teacher, admin_actor):
    """Test that only the creator or an admin may update."""
    with pytest.raises(AuthorizationError):
        update_folder(Actor.for_user(other_teacher), folder.pk, name='X')

    assert update_folder(admin_actor, folder.pk, name='X').name == 'X'


@pytest.mark.django_db
def test_delete_empty_folder(teacher_actor, folder):
    """Test that an empty folder disappears from listings."""
    delete_folder(teacher_actor, folder.pk)

    assert not list_folders(teacher_actor).exists()


@pytest.mark.django_db
def test_delete_folder_with_subfolder(teacher_actor, folder):
    """Test that a folder with children cannot be deleted."""
    create_folder(teacher_actor, '2024', parent_folder_id=folder.pk)

    with pytest.raises(ConflictError):
        delete_folder(teacher_actor, folder.pk)

    assert list(list_folders(teacher_actor)) == [folder]


@pytest.mark.django_db
def test_delete_folder_with_file(teacher_actor, teacher, folder, make_file):
    """Test that a folder holding a file cannot be deleted."""
    make_file(folder, teacher)

    with pytest.raises(ConflictError):
        delete_folder(teacher_actor, folder.pk)

    assert Folder.objects.filter(pk=folder.pk).exists()


@pytest.mark.django_db
def test_delete_missing_folder(teacher_actor):
    """Test that deleting an absent folder succeeds."""
    delete_folder(teacher_actor, 12345)


@pytest.mark.django_db
def test_delete_folder_requires_owner(folder, other_teacher):
    """Test that other teachers may not delete."""
    with pytest.raises(AuthorizationError):
        delete_folder(Actor.for_user(other_teacher), folder.pk)


@pytest.mark.django_db
def test_folder_path(teacher_actor, folder):
    """Test the breadcrumb from the root."""
    year = create_folder(teacher_actor, '2024', parent_folder_id=folder.pk)
    month = create_folder(teacher_actor, 'Enero', parent_folder_id=year.pk)

    assert [item.name for item in folder_path(month)] == [
        'Radiology',
        '2024',
        'Enero',
    ]


@pytest.mark.django_db
@pytest.mark.parametrize('parent_name', [None, 'Radiology'])
def test_create_folder_constraint_conflict(teacher_actor, parent_name):
    """Test that a name clash caught by the database is a conflict."""
    parent_pk = None
    if parent_name:
        parent_pk = create_folder(teacher_actor, parent_name).pk
    create_folder(teacher_actor, '2024', parent_folder_id=parent_pk)

    with mock.patch.object(folder_operations, '_ensure_unique_sibling'):
        with pytest.raises(ConflictError):
            create_folder(teacher_actor, '2024', parent_folder_id=parent_pk)

    assert Folder.objects.filter(
        name='2024',
        parent_folder_id=parent_pk,
    ).count() == 1


@pytest.mark.django_db
def test_update_folder_constraint_conflict(teacher_actor, folder):
    """Test that a rename clash caught by the database is a conflict."""
    create_folder(teacher_actor, '2024', parent_folder_id=folder.pk)
    month = create_folder(teacher_actor, '2025', parent_folder_id=folder.pk)

    with mock.patch.object(folder_operations, '_ensure_unique_sibling'):
        with pytest.raises(ConflictError):
            update_folder(teacher_actor, month.pk, name='2024')

    month.refresh_from_db()
    assert month.name == '2025'
