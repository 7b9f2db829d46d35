import uuid

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='ShareLink',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('share_id', models.CharField(max_length=64, unique=True)),
                ('file_id', models.CharField(help_text='Object key in the owner bucket', max_length=1024)),
                ('created_by', models.CharField(db_index=True, help_text='Identity of the owner', max_length=254)),
                ('access_type', models.CharField(choices=[('view', 'View')], default='view', max_length=16)),
                ('requires_auth', models.BooleanField(default=True)),
                ('expiry', models.DateTimeField()),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'verbose_name': 'Share link',
                'verbose_name_plural': 'Share links',
                'ordering': ['-created_at'],
            },
        ),
    ]
