# Generated manually for subscripper subscriptions

import uuid
from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('businesses', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='SubscriptionProduct',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=200)),
                ('description', models.TextField(blank=True)),
                ('item_type', models.CharField(help_text="What is redeemed, e.g. 'coffee'", max_length=100)),
                ('quantity_per_period', models.PositiveIntegerField()),
                ('period', models.CharField(choices=[('day', 'Day'), ('week', 'Week'), ('month', 'Month')], max_length=10)),
                ('price_pence', models.PositiveIntegerField()),
                ('currency', models.CharField(default='gbp', max_length=3)),
                ('blackout_times', models.JSONField(blank=True, default=list)),
                ('gateway_product_id', models.CharField(blank=True, max_length=255, null=True)),
                ('gateway_price_id', models.CharField(blank=True, max_length=255, null=True)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('business', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='products', to='businesses.business')),
            ],
            options={
                'db_table': 'subscription_products',
                'ordering': ['price_pence', 'name'],
                'indexes': [
                    models.Index(fields=['business', 'is_active'], name='subscriptio_busines_4d2c7e_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('quantity_per_period__gte', 1)), name='product_quantity_at_least_one'),
                    models.CheckConstraint(condition=models.Q(('price_pence__gt', 0)), name='product_price_positive'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Subscription',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('active', 'Active'), ('paused', 'Paused'), ('cancelled', 'Cancelled'), ('expired', 'Expired')], default='pending', max_length=20)),
                ('current_period_start', models.DateTimeField()),
                ('current_period_end', models.DateTimeField()),
                ('redemptions_used', models.PositiveIntegerField(default=0)),
                ('gateway_subscription_id', models.CharField(blank=True, max_length=255, null=True, unique=True)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('cancel_reason', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='subscriptions', to='subscriptions.subscriptionproduct')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='subscriptions', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'subscriptions',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['user', 'status'], name='subscriptio_user_id_9a3f1b_idx'),
                    models.Index(fields=['product', 'status'], name='subscriptio_product_6e8d2a_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('status__in', ('pending', 'active', 'paused'))), fields=('user', 'product'), name='unique_live_subscription_per_product'),
                    models.CheckConstraint(condition=models.Q(('redemptions_used__gte', 0)), name='subscription_redemptions_non_negative'),
                    models.CheckConstraint(condition=models.Q(('current_period_end__gt', models.F('current_period_start'))), name='subscription_period_ordered'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Redemption',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('item_type', models.CharField(max_length=100)),
                ('redeemed_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('undone_at', models.DateTimeField(blank=True, null=True)),
                ('redeemed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='redemptions_served', to=settings.AUTH_USER_MODEL)),
                ('subscription', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='redemptions', to='subscriptions.subscription')),
                ('undone_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='redemptions_undone', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'redemptions',
                'ordering': ['-redeemed_at'],
                'indexes': [
                    models.Index(fields=['subscription', 'redeemed_at'], name='redemptions_subscri_7c4e5f_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ProcessedWebhookEvent',
            fields=[
                ('event_id', models.CharField(max_length=255, primary_key=True, serialize=False)),
                ('event_type', models.CharField(max_length=100)),
                ('outcome', models.CharField(choices=[('applied', 'Applied'), ('ignored', 'Ignored'), ('unmatched', 'Unmatched')], max_length=20)),
                ('processed_at', models.DateTimeField(auto_now_add=True, db_index=True)),
            ],
            options={
                'db_table': 'processed_webhook_events',
                'ordering': ['-processed_at'],
            },
        ),
    ]
