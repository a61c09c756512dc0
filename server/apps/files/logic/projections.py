"""Read-side projections of library records into plain dictionaries.

The write path returns model instances; transport code calls these
functions to add display fields (uploader, tag names, group name)
without touching the invariant-enforcing operations.
"""

from typing import TYPE_CHECKING, Any

from server.apps.files.logic.folder_operations import folder_path
from server.apps.files.models import File, Folder

if TYPE_CHECKING:
    from server.apps.accounts.models import Group, User


def _user_summary(user: 'User | None') -> dict[str, Any] | None:
    if user is None:
        return None
    return {'id': user.pk, 'username': user.username, 'email': user.email}


def _group_summary(group: 'Group | None') -> dict[str, Any] | None:
    if group is None:
        return None
    return {'id': group.pk, 'name': group.name}


def project_file(file_instance: File) -> dict[str, Any]:
    """Display form of a file or link.

    Args:
        file_instance: File, ideally with uploader, group and tags loaded.

    Returns:
        Dictionary with display fields resolved.
    """
    return {
        'id': file_instance.pk,
        'filename': file_instance.filename,
        'description': file_instance.description,
        'fileType': file_instance.file_type,
        'url': file_instance.url,
        'mimeType': file_instance.mime_type,
        'size': file_instance.size_bytes,
        'folder': file_instance.folder_id,
        'tags': [
            {'id': tag.pk, 'name': tag.name}
            for tag in file_instance.tags.all()
        ],
        'uploadedBy': _user_summary(file_instance.uploaded_by),
        'assignedGroup': _group_summary(file_instance.assigned_group),
        'createdAt': file_instance.created_at.isoformat(),
        'modifiedAt': file_instance.modified_at.isoformat(),
    }


def project_folder(folder: Folder) -> dict[str, Any]:
    """Display form of a folder."""
    return {
        'id': folder.pk,
        'name': folder.name,
        'parentFolder': folder.parent_folder_id,
        'path': [
            {'id': ancestor.pk, 'name': ancestor.name}
            for ancestor in folder_path(folder)
        ],
        'createdBy': _user_summary(folder.created_by),
        'assignedGroup': _group_summary(folder.assigned_group),
        'createdAt': folder.created_at.isoformat(),
    }


def project_group(group: 'Group') -> dict[str, Any]:
    """Display form of a group.

    Uses the ``member_count`` annotation when the queryset provides it.
    """
    member_count = getattr(group, 'member_count', None)
    if member_count is None:
        member_count = group.memberships.count()
    return {
        'id': group.pk,
        'name': group.name,
        'description': group.description,
        'memberCount': member_count,
        'createdBy': _user_summary(group.created_by),
        'createdAt': group.created_at.isoformat(),
    }


def project_user(user: 'User') -> dict[str, Any]:
    """Display form of a user; never includes the password hash."""
    return {
        'id': user.pk,
        'username': user.username,
        'email': user.email,
        'role': user.role,
        'isEmailVerified': user.is_email_verified,
        'groups': [
            _group_summary(group)
            for group in user.library_groups.all()
        ],
    }
