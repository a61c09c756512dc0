"""Django admin configuration for accounts app."""

from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.db.models import Count, QuerySet
from django.http import HttpRequest

from server.apps.accounts.models import Group, Membership, User


class MembershipInline(admin.TabularInline):  # type: ignore[type-arg]
    """Members listed on the group page."""

    model = Membership
    extra = 0
    autocomplete_fields = ['user']
    readonly_fields = ['joined_at']


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Admin interface for library users."""

    list_display = [
        'username',
        'email',
        'role',
        'is_email_verified',
        'group_names',
        'created_at',
    ]

    list_filter = [
        'role',
        'is_email_verified',
        'is_active',
    ]

    search_fields = [
        'username',
        'email',
    ]

    fieldsets = (
        *BaseUserAdmin.fieldsets,
        ('Library', {
            'fields': ('role', 'is_email_verified'),
        }),
    )

    def group_names(self, obj: User) -> str:
        """Comma separated names of the user's groups.

        Args:
            obj: User instance.

        Returns:
            Group names, or '-' when the user has none.
        """
        names = [group.name for group in obj.library_groups.all()]
        return ', '.join(names) or '-'
    group_names.short_description = 'Groups'  # type: ignore[attr-defined]

    def get_queryset(self, request: HttpRequest) -> QuerySet[User]:
        """Load groups in one extra query."""
        return super().get_queryset(request).prefetch_related(
            'library_groups',
        )


@admin.register(Group)
class GroupAdmin(admin.ModelAdmin[Group]):
    """Admin interface for Group model."""

    list_display = [
        'name',
        'member_count',
        'created_by',
        'created_at',
    ]

    search_fields = [
        'name',
        'description',
    ]

    readonly_fields = [
        'created_by',
        'created_at',
        'updated_at',
    ]

    inlines = [MembershipInline]

    def member_count(self, obj: Group) -> int:
        """Number of members in the group.

        Args:
            obj: Group instance annotated by get_queryset.

        Returns:
            Member count.
        """
        return obj.num_members  # type: ignore[attr-defined]
    member_count.short_description = 'Members'  # type: ignore[attr-defined]

    def get_queryset(self, request: HttpRequest) -> QuerySet[Group]:
        """Annotate member counts and load the creator.

        Args:
            request: HTTP request.

        Returns:
            Optimized QuerySet.
        """
        return super().get_queryset(request).select_related(
            'created_by',
        ).annotate(num_members=Count('memberships'))
