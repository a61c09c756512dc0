import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('accounts', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Folder',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('assigned_group', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='folders', to='accounts.group')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_folders', to=settings.AUTH_USER_MODEL)),
                ('parent_folder', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='subfolders', to='files.folder')),
            ],
            options={
                'verbose_name': 'Folder',
                'verbose_name_plural': 'Folders',
                'ordering': ['name'],
                'constraints': [
                    models.UniqueConstraint(fields=('parent_folder', 'name'), name='folders_parent_name_unique'),
                    models.UniqueConstraint(condition=models.Q(('parent_folder__isnull', True)), fields=('name',), name='folders_root_name_unique'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Tag',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100, unique=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_tags', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Tag',
                'verbose_name_plural': 'Tags',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='File',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('filename', models.CharField(max_length=255)),
                ('description', models.TextField(blank=True, default='')),
                ('file_type', models.CharField(choices=[('pdf', 'PDF'), ('word', 'Word'), ('image', 'Image'), ('excel', 'Excel'), ('pptx', 'PowerPoint'), ('video', 'Video'), ('audio', 'Audio'), ('video_link', 'Video link'), ('generic_link', 'Link'), ('other', 'Other')], db_index=True, default='other', max_length=20)),
                ('storage_object_id', models.CharField(blank=True, help_text='Object key in the storage provider (binaries only)', max_length=512, null=True)),
                ('url', models.URLField(help_text='Retrieval URL for binaries, target URL for links', max_length=2048)),
                ('mime_type', models.CharField(blank=True, default='', max_length=255)),
                ('size_bytes', models.BigIntegerField(default=0, help_text='File size in bytes (0 for links)')),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('modified_at', models.DateTimeField(auto_now=True)),
                ('assigned_group', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='files', to='accounts.group')),
                ('folder', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='files', to='files.folder')),
                ('tags', models.ManyToManyField(blank=True, related_name='files', to='files.tag')),
                ('uploaded_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='uploaded_files', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'File',
                'verbose_name_plural': 'Files',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['folder', '-created_at'], name='files_folder_recent_idx')],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(models.Q(('file_type__in', ['video_link', 'generic_link']), _negated=True), models.Q(('size_bytes', 0), ('storage_object_id__isnull', True)), _connector='OR'), name='files_link_has_no_object'),
                    models.CheckConstraint(condition=models.Q(('file_type__in', ['video_link', 'generic_link']), ('storage_object_id__isnull', False), _connector='OR'), name='files_binary_has_object'),
                    models.CheckConstraint(condition=models.Q(('size_bytes__gte', 0)), name='files_size_non_negative'),
                ],
            },
        ),
    ]
