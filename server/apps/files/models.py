"""Database models for files app."""

from typing import ClassVar, Final, final, override

from django.conf import settings
from django.db import models

# Constants for field max lengths
_NAME_MAX_LENGTH: Final = 255
_FILE_TYPE_MAX_LENGTH: Final = 20
_MIME_TYPE_MAX_LENGTH: Final = 255
_OBJECT_ID_MAX_LENGTH: Final = 512
_URL_MAX_LENGTH: Final = 2048
_TAG_NAME_MAX_LENGTH: Final = 100


class FileType(models.TextChoices):
    """Classification of a library entry."""

    PDF = 'pdf', 'PDF'
    WORD = 'word', 'Word'
    IMAGE = 'image', 'Image'
    EXCEL = 'excel', 'Excel'
    PPTX = 'pptx', 'PowerPoint'
    VIDEO = 'video', 'Video'
    AUDIO = 'audio', 'Audio'
    VIDEO_LINK = 'video_link', 'Video link'
    GENERIC_LINK = 'generic_link', 'Link'
    OTHER = 'other', 'Other'

    @classmethod
    def link_types(cls) -> frozenset[str]:
        """Types that point to an external URL instead of a stored object."""
        return frozenset((cls.VIDEO_LINK.value, cls.GENERIC_LINK.value))


@final
class Folder(models.Model):
    """Node of the folder tree.

    Root folders have no parent. Sibling names are unique, including
    among roots, and a folder cannot be deleted while it holds
    subfolders or files.
    """

    name = models.CharField(max_length=_NAME_MAX_LENGTH)

    parent_folder = models.ForeignKey(
        'self',
        # Non-empty folders must not disappear, see delete_folder
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='subfolders',
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='created_folders',
    )

    assigned_group = models.ForeignKey(
        'accounts.Group',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='folders',
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'Folder'  # type: ignore[mutable-override]
        verbose_name_plural = 'Folders'  # type: ignore[mutable-override]
        ordering: ClassVar[list[str]] = ['name']

        constraints: ClassVar[list[models.BaseConstraint]] = [
            models.UniqueConstraint(
                fields=['parent_folder', 'name'],
                name='folders_parent_name_unique',
            ),
            # NULL parents never collide in the constraint above
            models.UniqueConstraint(
                fields=['name'],
                condition=models.Q(parent_folder__isnull=True),
                name='folders_root_name_unique',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return self.name


@final
class Tag(models.Model):
    """Label attached to files.

    Names are stored lowercase and are unique across the library.
    """

    name = models.CharField(
        max_length=_TAG_NAME_MAX_LENGTH,
        unique=True,
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='created_tags',
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'Tag'  # type: ignore[mutable-override]
        verbose_name_plural = 'Tags'  # type: ignore[mutable-override]
        ordering: ClassVar[list[str]] = ['name']

    @override
    def __str__(self) -> str:
        """String representation."""
        return self.name


@final
class File(models.Model):
    """Entry of the library: an uploaded binary or an external link.

    Binary entries reference an object in the storage provider through
    ``storage_object_id`` and ``url``. Link entries keep only the
    external ``url`` and have size 0.
    """

    filename = models.CharField(max_length=_NAME_MAX_LENGTH)

    description = models.TextField(blank=True, default='')

    file_type = models.CharField(
        max_length=_FILE_TYPE_MAX_LENGTH,
        choices=FileType.choices,
        default=FileType.OTHER,
        db_index=True,
    )

    storage_object_id = models.CharField(
        max_length=_OBJECT_ID_MAX_LENGTH,
        null=True,
        blank=True,
        help_text='Object key in the storage provider (binaries only)',
    )

    url = models.URLField(
        max_length=_URL_MAX_LENGTH,
        help_text='Retrieval URL for binaries, target URL for links',
    )

    mime_type = models.CharField(
        max_length=_MIME_TYPE_MAX_LENGTH,
        blank=True,
        default='',
    )

    size_bytes = models.BigIntegerField(
        default=0,
        help_text='File size in bytes (0 for links)',
    )

    folder = models.ForeignKey(
        Folder,
        on_delete=models.PROTECT,
        related_name='files',
    )

    tags = models.ManyToManyField(
        Tag,
        related_name='files',
        blank=True,
    )

    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='uploaded_files',
    )

    assigned_group = models.ForeignKey(
        'accounts.Group',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='files',
    )

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    modified_at = models.DateTimeField(auto_now=True)

    class Meta:
        """Model metadata."""

        verbose_name = 'File'  # type: ignore[mutable-override]
        verbose_name_plural = 'Files'  # type: ignore[mutable-override]
        ordering: ClassVar[list[str]] = ['-created_at']

        indexes: ClassVar[list[models.Index]] = [
            # Folder listings sorted by upload date
            models.Index(
                fields=['folder', '-created_at'],
                name='files_folder_recent_idx',
            ),
        ]

        constraints: ClassVar[list[models.BaseConstraint]] = [
            models.CheckConstraint(
                condition=(
                    ~models.Q(file_type__in=['video_link', 'generic_link'])
                    | models.Q(
                        storage_object_id__isnull=True,
                        size_bytes=0,
                    )
                ),
                name='files_link_has_no_object',
            ),
            models.CheckConstraint(
                condition=(
                    models.Q(file_type__in=['video_link', 'generic_link'])
                    | models.Q(storage_object_id__isnull=False)
                ),
                name='files_binary_has_object',
            ),
            models.CheckConstraint(
                condition=models.Q(size_bytes__gte=0),
                name='files_size_non_negative',
            ),
        ]

    @override
    def __str__(self) -> str:
        """String representation."""
        return f'{self.filename} ({self.file_type})'

    @property
    def is_link(self) -> bool:
        """Whether the entry is an external link."""
        return self.file_type in FileType.link_types()
