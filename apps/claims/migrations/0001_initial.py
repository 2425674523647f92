# Generated manually for claims app

import uuid
from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('deals', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Claim',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('session_token', models.CharField(max_length=64, unique=True)),
                ('payment_tier', models.CharField(choices=[('manual', 'Manual (self-reported)'), ('link', 'Payment link'), ('integrated', 'Integrated processor')], default='manual', max_length=20)),
                ('payment_method_type', models.CharField(blank=True, max_length=30)),
                ('payment_reference', models.CharField(blank=True, max_length=100)),
                ('deposit_confirmed', models.BooleanField(default=False)),
                ('deposit_confirmed_at', models.DateTimeField(blank=True, null=True)),
                ('deposit_amount_paid', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ('qr_code', models.CharField(blank=True, max_length=64, null=True, unique=True)),
                ('redemption_code', models.CharField(blank=True, db_index=True, max_length=6, null=True)),
                ('redeemed', models.BooleanField(default=False)),
                ('redeemed_at', models.DateTimeField(blank=True, null=True)),
                ('expires_at', models.DateTimeField()),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('customer', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='claims', to=settings.AUTH_USER_MODEL)),
                ('deal', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='claims', to='deals.deal')),
            ],
            options={
                'db_table': 'claims',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['customer', 'created_at'], name='claims_customer_created_idx'),
                    models.Index(fields=['deal', 'deposit_confirmed'], name='claims_deal_confirmed_idx'),
                    models.Index(fields=['expires_at'], name='claims_expires_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(models.Q(('qr_code__isnull', True), ('redemption_code__isnull', True)), models.Q(('qr_code__isnull', False), ('redemption_code__isnull', False)), _connector='OR'), name='claims_codes_set_together'),
                    models.CheckConstraint(condition=models.Q(models.Q(('deposit_confirmed', True), ('qr_code__isnull', False)), models.Q(('deposit_confirmed', False), ('qr_code__isnull', True)), _connector='OR'), name='claims_codes_iff_confirmed'),
                    models.CheckConstraint(condition=models.Q(('redeemed', False), ('deposit_confirmed', True), _connector='OR'), name='claims_redeemed_requires_deposit'),
                    models.CheckConstraint(condition=models.Q(models.Q(('redeemed', True), ('redeemed_at__isnull', False)), models.Q(('redeemed', False), ('redeemed_at__isnull', True)), _connector='OR'), name='claims_redeemed_at_iff_redeemed'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Redemption',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('scanned_at', models.DateTimeField()),
                ('deposit_amount', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ('amount_collected', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ('collection_completed', models.BooleanField(default=False)),
                ('collection_completed_at', models.DateTimeField(blank=True, null=True)),
                ('claim', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='redemption', to='claims.claim')),
                ('customer', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='redemptions', to=settings.AUTH_USER_MODEL)),
                ('deal', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='redemptions', to='deals.deal')),
                ('scanned_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='scanned_redemptions', to=settings.AUTH_USER_MODEL)),
                ('vendor', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='redemptions', to='deals.vendor')),
            ],
            options={
                'db_table': 'redemptions',
                'ordering': ['-scanned_at'],
                'indexes': [
                    models.Index(fields=['vendor', 'scanned_at'], name='redemptions_vendor_scanned_idx'),
                ],
            },
        ),
    ]
