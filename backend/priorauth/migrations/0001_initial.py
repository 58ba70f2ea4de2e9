import uuid

from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Patient',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('tenant_id', models.CharField(db_index=True, max_length=64)),
                ('mrn', models.CharField(max_length=20)),
                ('first_name', models.CharField(max_length=100)),
                ('last_name', models.CharField(max_length=100)),
                ('dob', models.DateField()),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'patients',
            },
        ),
        migrations.AddConstraint(
            model_name='patient',
            constraint=models.UniqueConstraint(fields=('tenant_id', 'mrn'), name='uniq_patient_mrn_per_tenant'),
        ),
        migrations.CreateModel(
            name='Prescription',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('tenant_id', models.CharField(db_index=True, max_length=64)),
                ('medication_name', models.CharField(max_length=200)),
                ('strength', models.CharField(blank=True, default='', max_length=50)),
                ('quantity', models.PositiveIntegerField(blank=True, null=True)),
                ('sig', models.TextField(blank=True, default='')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('patient', models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name='prescriptions',
                    to='priorauth.patient',
                )),
            ],
            options={
                'db_table': 'prescriptions',
            },
        ),
        migrations.CreateModel(
            name='PriorAuthRequest',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('tenant_id', models.CharField(db_index=True, max_length=64)),
                ('patient_id', models.CharField(db_index=True, max_length=64)),
                ('prescription_id', models.CharField(blank=True, max_length=64, null=True)),
                ('medication_name', models.CharField(max_length=200)),
                ('medication_strength', models.CharField(blank=True, default='', max_length=50)),
                ('medication_quantity', models.PositiveIntegerField(blank=True, null=True)),
                ('sig', models.TextField(blank=True, default='')),
                ('payer', models.CharField(max_length=200)),
                ('member_id', models.CharField(max_length=100)),
                ('external_reference_id', models.CharField(blank=True, max_length=100, null=True)),
                ('prescriber_id', models.CharField(blank=True, default='', max_length=64)),
                ('prescriber_npi', models.CharField(blank=True, default='', max_length=10)),
                ('prescriber_name', models.CharField(blank=True, default='', max_length=200)),
                ('urgency', models.CharField(
                    choices=[('routine', 'Routine'), ('urgent', 'Urgent'), ('stat', 'STAT')],
                    default='routine',
                    max_length=10,
                )),
                ('status', models.CharField(
                    choices=[
                        ('pending', 'Pending'),
                        ('submitted', 'Submitted'),
                        ('approved', 'Approved'),
                        ('denied', 'Denied'),
                        ('needs_info', 'Needs Info'),
                        ('error', 'Error'),
                    ],
                    default='pending',
                    max_length=20,
                )),
                ('status_reason', models.TextField(blank=True, default='')),
                ('request_payload', models.JSONField(blank=True, null=True)),
                ('response_payload', models.JSONField(blank=True, null=True)),
                ('attachments', models.JSONField(blank=True, default=list)),
                ('history', models.JSONField(blank=True, default=list)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'prior_auth_requests',
                'ordering': ['-created_at'],
            },
        ),
        migrations.AddIndex(
            model_name='priorauthrequest',
            index=models.Index(fields=['tenant_id', 'status'], name='pa_tenant_status_idx'),
        ),
        migrations.CreateModel(
            name='AuditLog',
            fields=[
                ('id', models.BigAutoField(primary_key=True, serialize=False)),
                ('tenant_id', models.CharField(db_index=True, max_length=64)),
                ('actor_id', models.CharField(max_length=64)),
                ('action', models.CharField(max_length=100)),
                ('resource_type', models.CharField(max_length=100)),
                ('resource_id', models.CharField(max_length=64)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'db_table': 'audit_log',
            },
        ),
    ]
