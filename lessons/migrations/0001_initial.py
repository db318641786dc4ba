from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
    ]

    operations = [
        migrations.CreateModel(
            name='Lesson',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=255)),
                ('video_path', models.CharField(blank=True, default='', max_length=512)),
                ('video_status', models.CharField(choices=[('pending', 'Pending'), ('processing', 'Processing'), ('completed', 'Completed'), ('failed', 'Failed')], default='pending', max_length=16)),
                ('video_progress', models.PositiveSmallIntegerField(default=0)),
                ('video_encryption_key', models.BinaryField(blank=True, editable=False, max_length=16, null=True)),
                ('video_hls_path', models.CharField(blank=True, default='', max_length=512)),
                ('video_attempts', models.PositiveSmallIntegerField(default=0)),
                ('video_last_error', models.TextField(blank=True, default='')),
                ('video_error_kind', models.CharField(blank=True, default='', max_length=32)),
                ('video_enqueued_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['-created_at'],
            },
        ),
        migrations.AddIndex(
            model_name='lesson',
            index=models.Index(fields=['video_status'], name='lessons_video_status_idx'),
        ),
    ]
