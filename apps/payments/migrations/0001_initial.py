import uuid
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="MpesaCallback",
            fields=[
                ("id", models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("checkout_request_id", models.CharField(db_index=True, max_length=100)),
                ("merchant_request_id", models.CharField(blank=True, max_length=100)),
                ("result_code", models.IntegerField(blank=True, null=True)),
                ("result_desc", models.CharField(blank=True, max_length=255)),
                ("success", models.BooleanField(default=False)),
                ("amount", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ("mpesa_receipt_number", models.CharField(blank=True, max_length=40)),
                ("phone_number", models.CharField(blank=True, max_length=20)),
                ("transaction_date", models.CharField(blank=True, max_length=20)),
                ("callback_data", models.JSONField(blank=True, default=dict)),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
    ]
