import apps.core.identifiers
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('patients', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Video',
            fields=[
                ('id', models.CharField(default=apps.core.identifiers.new_id, editable=False, max_length=36, primary_key=True, serialize=False)),
                ('file_name', models.CharField(max_length=255, verbose_name='File Name')),
                ('file_url', models.CharField(blank=True, max_length=1024, verbose_name='Media Handle')),
                ('content_type', models.CharField(blank=True, max_length=100, verbose_name='Content Type')),
                ('size_bytes', models.BigIntegerField(blank=True, null=True, verbose_name='Size (bytes)')),
                ('uploaded_at', models.DateTimeField(verbose_name='Uploaded At')),
                ('patient', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='videos', to='patients.patient')),
            ],
            options={
                'verbose_name': 'Video',
                'verbose_name_plural': 'Videos',
                'db_table': 'video',
                'ordering': ['-uploaded_at'],
                'indexes': [models.Index(fields=['patient', '-uploaded_at'], name='video_patient_8a41f2_idx')],
            },
        ),
    ]
