"""Django admin configuration for files app."""

from django.contrib import admin
from django.db.models import Count, QuerySet
from django.http import HttpRequest
from django.utils.html import format_html

from server.apps.files.logic.folder_operations import folder_path
from server.apps.files.models import File, Folder, Tag


def _format_bytes(size_bytes: int) -> str:
    """Format bytes in human-readable format.

    Args:
        size_bytes: Size in bytes.

    Returns:
        Formatted size string (e.g., '1.5 MB', '234 KB').
    """
    if size_bytes < 1024:
        return f'{size_bytes} B'
    if size_bytes < 1024 * 1024:  # noqa: WPS531
        return f'{size_bytes / 1024:.1f} KB'
    if size_bytes < 1024 * 1024 * 1024:  # noqa: WPS531
        return f'{size_bytes / (1024 * 1024):.1f} MB'
    return f'{size_bytes / (1024 * 1024 * 1024):.1f} GB'


@admin.register(Folder)
class FolderAdmin(admin.ModelAdmin[Folder]):
    """Admin interface for Folder model."""

    list_display = [
        'name',
        'path_display',
        'created_by',
        'assigned_group',
        'file_count',
        'created_at',
    ]

    list_filter = [
        'assigned_group',
    ]

    search_fields = [
        'name',
    ]

    readonly_fields = [
        'created_at',
        'updated_at',
    ]

    def path_display(self, obj: Folder) -> str:
        """Display the folder's breadcrumb.

        Args:
            obj: Folder instance.

        Returns:
            Ancestor names joined with ' / '.
        """
        return ' / '.join(folder.name for folder in folder_path(obj))
    path_display.short_description = 'Path'  # type: ignore[attr-defined]

    def file_count(self, obj: Folder) -> int:
        """Number of files directly inside the folder."""
        return obj.num_files  # type: ignore[attr-defined]
    file_count.short_description = 'Files'  # type: ignore[attr-defined]

    def get_queryset(self, request: HttpRequest) -> QuerySet[Folder]:
        """Optimize queryset with select_related and file counts.

        Args:
            request: HTTP request.

        Returns:
            Optimized QuerySet.
        """
        return super().get_queryset(request).select_related(
            'created_by',
            'assigned_group',
        ).annotate(num_files=Count('files'))


@admin.register(File)
class FileAdmin(admin.ModelAdmin[File]):
    """Admin interface for File model."""

    list_display = [
        'filename',
        'file_type',
        'folder',
        'uploaded_by',
        'assigned_group',
        'size_display',
        'created_at',
    ]

    list_filter = [
        'file_type',
        'created_at',
        'assigned_group',
    ]

    search_fields = [
        'filename',
        'description',
        'storage_object_id',
    ]

    readonly_fields = [
        'storage_object_id',
        'link_display',
        'size_bytes',
        'mime_type',
        'created_at',
        'modified_at',
    ]

    filter_horizontal = ['tags']  # Better UX for M2M relationship

    fieldsets = (
        ('File Information', {
            'fields': ('filename', 'description', 'file_type', 'folder'),
        }),
        ('Storage', {
            'fields': (
                'storage_object_id',
                'link_display',
                'size_bytes',
                'mime_type',
            ),
        }),
        ('Access', {
            'fields': ('uploaded_by', 'assigned_group', 'tags'),
        }),
        ('Timestamps', {
            'fields': ('created_at', 'modified_at'),
        }),
    )

    def size_display(self, obj: File) -> str:
        """Display file size in human-readable format.

        Args:
            obj: File instance.

        Returns:
            Formatted size string, '-' for links.
        """
        if obj.is_link:
            return '-'
        return _format_bytes(obj.size_bytes)
    size_display.short_description = 'Size'  # type: ignore[attr-defined]

    def link_display(self, obj: File) -> str:
        """Clickable retrieval URL."""
        if not obj.url:
            return '-'
        return format_html(
            '<a href="{url}" target="_blank" rel="noopener">{url}</a>',
            url=obj.url,
        )
    link_display.short_description = 'URL'  # type: ignore[attr-defined]

    def get_queryset(self, request: HttpRequest) -> QuerySet[File]:
        """Optimize queryset with select_related.

        Args:
            request: HTTP request.

        Returns:
            Optimized QuerySet.
        """
        return super().get_queryset(request).select_related(
            'folder',
            'uploaded_by',
            'assigned_group',
        )


@admin.register(Tag)
class TagAdmin(admin.ModelAdmin[Tag]):
    """Admin interface for Tag model."""

    list_display = [
        'name',
        'created_by',
        'file_count',
        'created_at',
    ]

    search_fields = [
        'name',
    ]

    readonly_fields = ['created_at']

    def file_count(self, obj: Tag) -> int:
        """Count of files with this tag.

        Args:
            obj: Tag instance.

        Returns:
            Number of files tagged with this tag.
        """
        return obj.num_files  # type: ignore[attr-defined]
    file_count.short_description = 'Files'  # type: ignore[attr-defined]

    def get_queryset(self, request: HttpRequest) -> QuerySet[Tag]:
        """Optimize queryset with select_related and file counts.

        Args:
            request: HTTP request.

        Returns:
            Optimized QuerySet.
        """
        return super().get_queryset(request).select_related(
            'created_by',
        ).annotate(num_files=Count('files'))
