from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='FileRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('key', models.CharField(help_text='Object key in the tenant bucket', max_length=1024)),
                ('name', models.CharField(max_length=255)),
                ('type', models.CharField(choices=[('file', 'File'), ('folder', 'Folder')], default='file', max_length=16)),
                ('mime_type', models.CharField(blank=True, default='', max_length=255)),
                ('size', models.BigIntegerField(default=0, help_text='Object size in bytes')),
                ('parent_id', models.CharField(blank=True, help_text='Key prefix of the containing folder, null at root', max_length=1024, null=True)),
                ('owner_email', models.CharField(db_index=True, max_length=254)),
                ('storage_provider', models.CharField(default='s3', max_length=32)),
                ('storage_path', models.CharField(help_text='Bucket and key: {container}/{key}', max_length=1024)),
                ('is_deleted', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('modified_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'File record',
                'verbose_name_plural': 'File records',
                'ordering': ['-modified_at'],
                'indexes': [models.Index(fields=['owner_email', 'is_deleted'], name='files_owner_deleted_idx')],
                'constraints': [models.UniqueConstraint(fields=('owner_email', 'key'), name='files_owner_key_unique')],
            },
        ),
    ]
