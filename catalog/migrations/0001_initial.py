from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Organization',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('name', models.CharField(max_length=255)),
                ('slug', models.SlugField(max_length=255, unique=True)),
                ('type', models.CharField(choices=[('university', 'University'), ('government', 'Government'), ('nonprofit', 'Nonprofit'), ('organization', 'Organization')], default='organization', max_length=32)),
                ('website', models.URLField(blank=True, max_length=500, null=True)),
                ('city', models.CharField(blank=True, max_length=100)),
                ('state_province', models.CharField(blank=True, max_length=100)),
                ('country', models.CharField(default='USA', max_length=3)),
                ('verification_status', models.CharField(choices=[('pending', 'Pending'), ('verified', 'Verified')], default='pending', max_length=20)),
                ('trust_score', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=3, validators=[django.core.validators.MinValueValidator(Decimal('0.00')), django.core.validators.MaxValueValidator(Decimal('5.00'))])),
                ('is_active', models.BooleanField(default=True)),
            ],
            options={
                'ordering': ['name'],
                'indexes': [models.Index(fields=['type'], name='organization_type_idx')],
                'constraints': [models.CheckConstraint(condition=models.Q(('trust_score__gte', 0), ('trust_score__lte', 5)), name='organization_valid_trust_score')],
            },
        ),
        migrations.CreateModel(
            name='AttributeDefinition',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('name', models.CharField(max_length=100, unique=True)),
                ('display_name', models.CharField(blank=True, max_length=150)),
                ('description', models.TextField(blank=True)),
                ('data_type', models.CharField(choices=[('string', 'String'), ('integer', 'Integer'), ('decimal', 'Decimal'), ('boolean', 'Boolean'), ('date', 'Date'), ('json', 'JSON'), ('array', 'Array')], max_length=20)),
                ('category', models.CharField(blank=True, max_length=50)),
                ('applies_to', models.CharField(choices=[('programs', 'Programs'), ('organizations', 'Organizations')], default='programs', max_length=20)),
                ('is_active', models.BooleanField(default=True)),
            ],
            options={
                'ordering': ['category', 'name'],
                'indexes': [models.Index(fields=['category'], name='attrdef_category_idx')],
            },
        ),
        migrations.CreateModel(
            name='Category',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('name', models.CharField(max_length=100)),
                ('slug', models.SlugField(max_length=100)),
                ('description', models.TextField(blank=True)),
                ('category_type', models.CharField(choices=[('subject', 'Subject'), ('demographic', 'Demographic')], max_length=30)),
                ('level', models.PositiveIntegerField(default=0)),
                ('path', models.CharField(blank=True, max_length=255)),
                ('is_active', models.BooleanField(default=True)),
                ('parent', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name='children', to='catalog.category')),
            ],
            options={
                'verbose_name_plural': 'categories',
                'ordering': ['category_type', 'path'],
                'indexes': [models.Index(fields=['category_type'], name='category_type_idx')],
                'unique_together': {('slug', 'category_type')},
            },
        ),
        migrations.CreateModel(
            name='MigrationRun',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('action', models.CharField(max_length=64)),
                ('input_path', models.CharField(blank=True, max_length=500)),
                ('report_path', models.CharField(blank=True, max_length=500)),
                ('started_at', models.DateTimeField(blank=True, null=True)),
                ('finished_at', models.DateTimeField(blank=True, null=True)),
                ('dry_run', models.BooleanField(default=False)),
                ('stats', models.JSONField(blank=True, default=dict)),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['action', 'created_at'], name='migrationrun_action_idx')],
            },
        ),
        migrations.CreateModel(
            name='NormalizationRule',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('type', models.CharField(choices=[('ORGANIZATION_NAME', 'Organization Name'), ('PROGRAM_TYPE', 'Program Type')], max_length=32)),
                ('source_value', models.CharField(db_index=True, max_length=255)),
                ('normalized_value', models.CharField(max_length=255)),
                ('metadata', models.JSONField(blank=True, default=dict)),
            ],
            options={
                'ordering': ['type', 'source_value'],
                'unique_together': {('type', 'source_value')},
            },
        ),
        migrations.CreateModel(
            name='MigrationIssue',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('record_identifier', models.CharField(max_length=255)),
                ('field', models.CharField(max_length=100)),
                ('issue', models.TextField()),
                ('severity', models.CharField(choices=[('info', 'Info'), ('warning', 'Warning'), ('error', 'Error')], max_length=10)),
                ('run', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='issues', to='catalog.migrationrun')),
            ],
            options={
                'ordering': ['run', 'id'],
                'indexes': [
                    models.Index(fields=['severity'], name='migrationissue_severity_idx'),
                    models.Index(fields=['field'], name='migrationissue_field_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Program',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('name', models.CharField(max_length=255)),
                ('slug', models.SlugField(max_length=255)),
                ('description', models.TextField(blank=True)),
                ('short_description', models.CharField(blank=True, max_length=500)),
                ('program_type', models.CharField(choices=[('summer_program', 'Summer Program'), ('competition', 'Competition'), ('scholarship', 'Scholarship'), ('award', 'Award'), ('workshop', 'Workshop'), ('conference', 'Conference'), ('camp', 'Camp'), ('program', 'Program')], default='program', max_length=32)),
                ('target_audience', models.CharField(choices=[('middle_school', 'Middle School'), ('high_school', 'High School')], default='high_school', max_length=32)),
                ('duration_value', models.PositiveIntegerField(blank=True, null=True)),
                ('selectivity_tier', models.CharField(choices=[('elite', 'Elite'), ('highly_selective', 'Highly Selective'), ('selective', 'Selective'), ('open', 'Open')], default='open', max_length=20)),
                ('estimated_acceptance_rate', models.DecimalField(blank=True, decimal_places=2, max_digits=5, null=True, validators=[django.core.validators.MinValueValidator(Decimal('0')), django.core.validators.MaxValueValidator(Decimal('100'))])),
                ('status', models.CharField(choices=[('active', 'Active'), ('inactive', 'Inactive')], default='active', max_length=20)),
                ('data_source', models.CharField(blank=True, max_length=100)),
                ('organization', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='programs', to='catalog.organization')),
            ],
            options={
                'ordering': ['name'],
                'indexes': [
                    models.Index(fields=['program_type'], name='program_type_idx'),
                    models.Index(fields=['status'], name='program_status_idx'),
                    models.Index(fields=['selectivity_tier'], name='program_selectivity_idx'),
                ],
                'constraints': [models.CheckConstraint(condition=models.Q(('estimated_acceptance_rate__isnull', True), models.Q(('estimated_acceptance_rate__gte', 0), ('estimated_acceptance_rate__lte', 100)), _connector='OR'), name='program_valid_acceptance_rate')],
                'unique_together': {('organization', 'slug')},
            },
        ),
        migrations.CreateModel(
            name='ProgramAttribute',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('value_string', models.TextField(blank=True, null=True)),
                ('value_integer', models.IntegerField(blank=True, null=True)),
                ('value_decimal', models.DecimalField(blank=True, decimal_places=4, max_digits=14, null=True)),
                ('value_boolean', models.BooleanField(blank=True, null=True)),
                ('value_date', models.DateField(blank=True, null=True)),
                ('value_json', models.JSONField(blank=True, null=True)),
                ('value_array', models.JSONField(blank=True, null=True)),
                ('attribute_definition', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='program_values', to='catalog.attributedefinition')),
                ('program', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='attributes', to='catalog.program')),
            ],
            options={
                'ordering': ['program', 'attribute_definition'],
                'unique_together': {('program', 'attribute_definition')},
            },
        ),
        migrations.CreateModel(
            name='ProgramCategory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('is_primary', models.BooleanField(default=False)),
                ('relevance_score', models.DecimalField(decimal_places=2, default=Decimal('1.00'), max_digits=3)),
                ('category', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='program_links', to='catalog.category')),
                ('program', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='category_links', to='catalog.program')),
            ],
            options={
                'ordering': ['program', '-is_primary'],
                'constraints': [models.UniqueConstraint(condition=models.Q(('is_primary', True)), fields=('program',), name='program_single_primary_category')],
                'unique_together': {('program', 'category')},
            },
        ),
    ]
