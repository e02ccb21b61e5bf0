import uuid
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='PortalSession',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('role', models.CharField(choices=[('admin', 'Admin'), ('clinic', 'Clinic')], max_length=10)),
                ('clinic_id', models.CharField(blank=True, db_index=True, max_length=36)),
                ('email', models.EmailField(max_length=255)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('revoked_at', models.DateTimeField(blank=True, null=True)),
            ],
            options={
                'verbose_name': 'Portal Session',
                'verbose_name_plural': 'Portal Sessions',
                'db_table': 'portal_session',
                'ordering': ['-created_at'],
            },
        ),
    ]
